"""initial schema

Revision ID: a1c3e5f70001
Revises:
Create Date: 2026-10-19 09:12:41.118204
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "a1c3e5f70001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(12, 2)


def _timestamps(updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()))
    return cols


def _tenant_fk():
    return sa.Column("tenant_id", sa.Integer, sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)


def _user_fk(name: str):
    return sa.Column(name, sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


def upgrade() -> None:
    # ---- tenants / users / roles ----
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("slug", sa.String, nullable=False, unique=True),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("subdomain", sa.String, nullable=True, unique=True),
        sa.Column("subscription_tier", sa.String, nullable=False),
        sa.Column("status", sa.String, nullable=False),
        sa.Column("email", sa.String, nullable=True),
        sa.Column("phone", sa.String, nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "tenant_branding",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("tenant_id", sa.Integer, sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("company_name", sa.String, nullable=False),
        sa.Column("primary_color", sa.String, nullable=False),
        sa.Column("secondary_color", sa.String, nullable=True),
        sa.Column("logo_url", sa.String, nullable=True),
        sa.Column("custom_domain", sa.String, nullable=True),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_table(
        "tenant_features",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("tenant_id", sa.Integer, sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("flags", sa.JSON, nullable=False),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("email", sa.String, nullable=False),
        sa.Column("password_hash", sa.String, nullable=False),
        sa.Column("role_name", sa.String, nullable=False),
        sa.Column("first_name", sa.String, nullable=True),
        sa.Column("last_name", sa.String, nullable=True),
        sa.Column("phone", sa.String, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="1"),
        sa.Column("last_login_at", sa.DateTime, nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("tenant_id", "email", name="uix_user_tenant_email"),
    )
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("permissions", sa.Text, nullable=True),
        sa.UniqueConstraint("tenant_id", "name", name="uix_role_tenant_name"),
    )
    op.create_table(
        "system_config",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("tenant_id", sa.Integer, sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True),
        sa.Column("key", sa.String, nullable=False),
        sa.Column("value", sa.String, nullable=True),
        sa.UniqueConstraint("tenant_id", "key", name="uix_system_config_tenant_key"),
    )

    # ---- clients / vehicles ----
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("first_name", sa.String, nullable=False),
        sa.Column("last_name", sa.String, nullable=False),
        sa.Column("company_name", sa.String, nullable=True),
        sa.Column("email", sa.String, nullable=True),
        sa.Column("phone", sa.String, nullable=True),
        sa.Column("address", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="1"),
        sa.Column("portal_access", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("portal_password_hash", sa.String, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_clients_tenant_email", "clients", ["tenant_id", "email"])
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("make", sa.String, nullable=False),
        sa.Column("model", sa.String, nullable=False),
        sa.Column("year", sa.Integer, nullable=True),
        sa.Column("license_plate", sa.String, nullable=True),
        sa.Column("vin", sa.String, nullable=True),
        sa.Column("color", sa.String, nullable=True),
        sa.Column("mileage", sa.Integer, nullable=True),
        sa.Column("fleet_number", sa.String, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_vehicles_client", "vehicles", ["client_id"])

    # ---- jobs ----
    op.create_table(
        "job_statuses",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("color", sa.String, nullable=False),
        sa.Column("order_index", sa.Integer, nullable=False),
        sa.Column("is_final", sa.Boolean, nullable=False, server_default="0"),
        sa.UniqueConstraint("tenant_id", "name", name="uix_job_status_tenant_name"),
    )
    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status_id", sa.Integer, sa.ForeignKey("job_statuses.id", ondelete="SET NULL"), nullable=True),
        _user_fk("assigned_technician_id"),
        _user_fk("created_by"),
        sa.Column("job_number", sa.String, nullable=False),
        sa.Column("title", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("priority", sa.String, nullable=False),
        sa.Column("estimated_hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("actual_hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("scheduled_start_date", sa.DateTime, nullable=True),
        sa.Column("scheduled_end_date", sa.DateTime, nullable=True),
        sa.Column("actual_start_date", sa.DateTime, nullable=True),
        sa.Column("actual_end_date", sa.DateTime, nullable=True),
        sa.Column("estimated_completion", sa.DateTime, nullable=True),
        sa.Column("completed_at", sa.DateTime, nullable=True),
        sa.Column("internal_notes", sa.Text, nullable=True),
        sa.Column("work_authorized", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("work_authorized_at", sa.DateTime, nullable=True),
        _user_fk("work_authorized_by"),
        sa.Column("quote_approved", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("quote_approved_at", sa.DateTime, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_jobs_tenant_status", "jobs", ["tenant_id", "status_id"])
    op.create_index("ix_jobs_tenant_client", "jobs", ["tenant_id", "client_id"])

    # ---- inventory ----
    op.create_table(
        "inventory_parts",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("part_number", sa.String, nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("category", sa.String, nullable=False),
        sa.Column("condition", sa.String, nullable=False),
        sa.Column("cost_price", MONEY, nullable=False),
        sa.Column("selling_price", MONEY, nullable=False),
        sa.Column("current_stock", sa.Integer, nullable=False),
        sa.Column("reserved_stock", sa.Integer, nullable=False),
        sa.Column("minimum_stock", sa.Integer, nullable=False),
        sa.Column("location", sa.String, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "part_number", name="uix_part_tenant_number"),
    )
    op.create_index("ix_parts_tenant_category", "inventory_parts", ["tenant_id", "category"])

    # ---- quotes / invoices ----
    op.create_table(
        "quotes",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("job_id", sa.Integer, sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        _user_fk("created_by"),
        sa.Column("quote_number", sa.String, nullable=False),
        sa.Column("title", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String, nullable=False),
        sa.Column("subtotal", MONEY, nullable=False),
        sa.Column("tax_rate", sa.Numeric(6, 3), nullable=False),
        sa.Column("tax_amount", MONEY, nullable=False),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column("valid_until", sa.Date, nullable=True),
        sa.Column("terms_and_conditions", sa.Text, nullable=True),
        sa.Column("client_approved", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("client_approved_at", sa.DateTime, nullable=True),
        sa.Column("client_signature", sa.Text, nullable=True),
        sa.Column("client_ip_address", sa.String, nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_quotes_tenant_job", "quotes", ["tenant_id", "job_id"])
    op.create_table(
        "quote_items",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("quote_id", sa.Integer, sa.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("part_id", sa.Integer, sa.ForeignKey("inventory_parts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("item_type", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("quantity", MONEY, nullable=False),
        sa.Column("unit_price", MONEY, nullable=False),
        sa.Column("total_price", MONEY, nullable=False),
        sa.Column("hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("hourly_rate", MONEY, nullable=True),
        sa.Column("order_index", sa.Integer, nullable=False),
    )
    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("job_id", sa.Integer, sa.ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True),
        sa.Column("quote_id", sa.Integer, sa.ForeignKey("quotes.id", ondelete="SET NULL"), nullable=True, unique=True),
        sa.Column("client_id", sa.Integer, sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        _user_fk("created_by"),
        sa.Column("invoice_number", sa.String, nullable=False),
        sa.Column("title", sa.String, nullable=False),
        sa.Column("status", sa.String, nullable=False),
        sa.Column("subtotal", MONEY, nullable=False),
        sa.Column("tax_rate", sa.Numeric(6, 3), nullable=False),
        sa.Column("tax_amount", MONEY, nullable=False),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column("amount_paid", MONEY, nullable=False),
        sa.Column("amount_due", MONEY, nullable=False),
        sa.Column("issue_date", sa.Date, nullable=False),
        sa.Column("due_date", sa.Date, nullable=False),
        sa.Column("paid_date", sa.Date, nullable=True),
        sa.Column("payment_method", sa.String, nullable=True),
        sa.Column("payment_reference", sa.String, nullable=True),
        sa.Column("terms_and_conditions", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_invoices_tenant_status", "invoices", ["tenant_id", "status"])
    op.create_index("ix_invoices_tenant_due", "invoices", ["tenant_id", "due_date"])
    op.create_table(
        "invoice_items",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("invoice_id", sa.Integer, sa.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("part_id", sa.Integer, sa.ForeignKey("inventory_parts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("item_type", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("quantity", MONEY, nullable=False),
        sa.Column("unit_price", MONEY, nullable=False),
        sa.Column("total_price", MONEY, nullable=False),
        sa.Column("hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("hourly_rate", MONEY, nullable=True),
        sa.Column("order_index", sa.Integer, nullable=False),
    )

    # ---- stock ledger / allocations ----
    op.create_table(
        "inventory_movements",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("part_id", sa.Integer, sa.ForeignKey("inventory_parts.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id"),
        sa.Column("movement_type", sa.String, nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("reason", sa.String, nullable=True),
        sa.Column("reference_type", sa.String, nullable=True),
        sa.Column("reference_id", sa.Integer, nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_movements_tenant_part", "inventory_movements", ["tenant_id", "part_id"])
    op.create_table(
        "job_parts_allocation",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("job_id", sa.Integer, sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("part_id", sa.Integer, sa.ForeignKey("inventory_parts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity_allocated", sa.Integer, nullable=False),
        sa.Column("quantity_used", sa.Integer, nullable=True),
        _user_fk("allocated_by"),
        _user_fk("used_by"),
        sa.Column("used_at", sa.DateTime, nullable=True),
        sa.Column("usage_notes", sa.Text, nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_allocation_job_part", "job_parts_allocation", ["job_id", "part_id"])

    # ---- calendar / activity ----
    op.create_table(
        "calendar_events",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        sa.Column("job_id", sa.Integer, sa.ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True),
        _user_fk("assigned_user_id"),
        _user_fk("created_by"),
        sa.Column("title", sa.String, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("start_time", sa.DateTime, nullable=False),
        sa.Column("end_time", sa.DateTime, nullable=False),
        sa.Column("all_day", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("event_type", sa.String, nullable=False),
        sa.Column("status", sa.String, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_calendar_tenant_start", "calendar_events", ["tenant_id", "start_time"])
    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer, primary_key=True),
        _tenant_fk(),
        _user_fk("user_id"),
        sa.Column("entity_type", sa.String, nullable=False),
        sa.Column("entity_id", sa.Integer, nullable=False),
        sa.Column("action", sa.String, nullable=False),
        sa.Column("old_values", sa.JSON, nullable=True),
        sa.Column("new_values", sa.JSON, nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_activity_tenant_entity", "activity_logs", ["tenant_id", "entity_type", "entity_id"])


def downgrade() -> None:
    for table in (
        "activity_logs",
        "calendar_events",
        "job_parts_allocation",
        "inventory_movements",
        "invoice_items",
        "invoices",
        "quote_items",
        "quotes",
        "inventory_parts",
        "jobs",
        "job_statuses",
        "vehicles",
        "clients",
        "system_config",
        "roles",
        "users",
        "tenant_features",
        "tenant_branding",
        "tenants",
    ):
        op.drop_table(table)
