# backend/tests/test_permissions.py
from garagehub.core.permissions import (
    ALL,
    FINANCIAL_MANAGEMENT,
    INVOICING,
    JOB_VIEW,
    accessible_routes,
    can_access_route,
    format_permissions,
    has_any_permission,
    has_permission,
    parse_permissions,
    resolve_permissions,
)


def test_all_grants_everything():
    assert has_permission({ALL}, "anything")
    assert can_access_route({ALL}, "/super-admin")


def test_empty_set_grants_nothing():
    assert not has_permission(set(), JOB_VIEW)
    assert not has_any_permission(set(), [JOB_VIEW, INVOICING])


def test_unknown_route_is_public():
    assert can_access_route(set(), "/not-a-route")


def test_technician_routes():
    perms = resolve_permissions(None, "technician")
    routes = accessible_routes(perms)
    assert "/jobs" in routes
    assert "/invoices" not in routes
    assert "/super-admin" not in routes


def test_db_permissions_extend_role_defaults():
    perms = resolve_permissions("invoicing, custom_flag", "technician")
    assert INVOICING in perms
    assert "custom_flag" in perms
    assert JOB_VIEW in perms


def test_parse_and_format_are_normalized():
    raw = format_permissions([" quotes", "invoicing", "quotes", ""])
    assert raw == "invoicing,quotes"
    assert parse_permissions(raw) == {"invoicing", "quotes"}
    assert parse_permissions(None) == set()


def test_admin_has_financial_management():
    assert FINANCIAL_MANAGEMENT in resolve_permissions(None, "admin")
