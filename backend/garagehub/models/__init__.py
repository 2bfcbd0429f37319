# backend/garagehub/models/__init__.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Date,
    ForeignKey,
    UniqueConstraint,
    Index,
    func,
    Numeric,
    Boolean,
    JSON,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

MONEY = Numeric(12, 2)
QTY = Numeric(12, 2)


# =========================
# Core (Tenant / User / Role)
# =========================
class Tenant(Base):
    __tablename__ = "tenants"
    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    subdomain = Column(String, unique=True, nullable=True)
    subscription_tier = Column(String, nullable=False, default="basic")
    status = Column(String, nullable=False, default="active")  # active | suspended | cancelled
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    branding = relationship("TenantBranding", uselist=False, cascade="all, delete-orphan", lazy="selectin")
    features = relationship("TenantFeatures", uselist=False, cascade="all, delete-orphan", lazy="selectin")


class TenantBranding(Base):
    __tablename__ = "tenant_branding"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True)
    company_name = Column(String, nullable=False)
    primary_color = Column(String, nullable=False)
    secondary_color = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    custom_domain = Column(String, nullable=True)

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class TenantFeatures(Base):
    __tablename__ = "tenant_features"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True)
    flags = Column(JSON, nullable=False, default=dict)

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)

    email = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    role_name = Column(String, nullable=False, default="technician")
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")
    last_login_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uix_user_tenant_email"),)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.email


class Role(Base):
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    permissions = Column(Text, nullable=True)

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uix_role_tenant_name"),)


class SystemConfig(Base):
    """Key/value business settings. tenant_id NULL = platform-wide default."""
    __tablename__ = "system_config"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True)
    key = Column(String, nullable=False)
    value = Column(String, nullable=True)

    __table_args__ = (UniqueConstraint("tenant_id", "key", name="uix_system_config_tenant_key"),)


# =========================
# Clients / Vehicles
# =========================
class Client(Base):
    __tablename__ = "clients"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    company_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")

    portal_access = Column(Boolean, nullable=False, default=False, server_default="0")
    portal_password_hash = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    vehicles = relationship("Vehicle", back_populates="client", cascade="all, delete-orphan", lazy="selectin")

    __table_args__ = (Index("ix_clients_tenant_email", "tenant_id", "email"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Vehicle(Base):
    __tablename__ = "vehicles"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)

    make = Column(String, nullable=False)
    model = Column(String, nullable=False)
    year = Column(Integer, nullable=True)
    license_plate = Column(String, nullable=True)
    vin = Column(String, nullable=True)
    color = Column(String, nullable=True)
    mileage = Column(Integer, nullable=True)
    fleet_number = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="vehicles", lazy="selectin")

    __table_args__ = (Index("ix_vehicles_client", "client_id"),)


# =========================
# Jobs
# =========================
class JobStatus(Base):
    __tablename__ = "job_statuses"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)

    name = Column(String, nullable=False)
    color = Column(String, nullable=False, default="#6b7280")
    order_index = Column(Integer, nullable=False, default=0)
    is_final = Column(Boolean, nullable=False, default=False, server_default="0")

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uix_job_status_tenant_name"),)


class Job(Base):
    __tablename__ = "jobs"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False)
    status_id = Column(Integer, ForeignKey("job_statuses.id", ondelete="SET NULL"), nullable=True)
    assigned_technician_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    job_number = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(String, nullable=False, default="medium")  # low | medium | high | urgent

    estimated_hours = Column(Numeric(8, 2), nullable=True)
    actual_hours = Column(Numeric(8, 2), nullable=True)
    scheduled_start_date = Column(DateTime, nullable=True)
    scheduled_end_date = Column(DateTime, nullable=True)
    actual_start_date = Column(DateTime, nullable=True)
    actual_end_date = Column(DateTime, nullable=True)
    estimated_completion = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    internal_notes = Column(Text, nullable=True)

    work_authorized = Column(Boolean, nullable=False, default=False, server_default="0")
    work_authorized_at = Column(DateTime, nullable=True)
    work_authorized_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    quote_approved = Column(Boolean, nullable=False, default=False, server_default="0")
    quote_approved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", lazy="selectin")
    vehicle = relationship("Vehicle", lazy="selectin")
    status = relationship("JobStatus", lazy="selectin")
    assigned_technician = relationship("User", foreign_keys=[assigned_technician_id], lazy="selectin")

    __table_args__ = (
        Index("ix_jobs_tenant_status", "tenant_id", "status_id"),
        Index("ix_jobs_tenant_client", "tenant_id", "client_id"),
    )


# =========================
# Quotes
# =========================
class Quote(Base):
    __tablename__ = "quotes"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    quote_number = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="draft")  # draft | sent | approved | rejected | expired

    subtotal = Column(MONEY, nullable=False, default=0)
    tax_rate = Column(Numeric(6, 3), nullable=False, default=0)
    tax_amount = Column(MONEY, nullable=False, default=0)
    total_amount = Column(MONEY, nullable=False, default=0)

    valid_until = Column(Date, nullable=True)
    terms_and_conditions = Column(Text, nullable=True)

    client_approved = Column(Boolean, nullable=False, default=False, server_default="0")
    client_approved_at = Column(DateTime, nullable=True)
    client_signature = Column(Text, nullable=True)
    client_ip_address = Column(String, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    job = relationship("Job", lazy="selectin")
    items = relationship(
        "QuoteItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteItem.order_index",
        lazy="selectin",
    )

    __table_args__ = (Index("ix_quotes_tenant_job", "tenant_id", "job_id"),)


class QuoteItem(Base):
    __tablename__ = "quote_items"
    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False)
    part_id = Column(Integer, ForeignKey("inventory_parts.id", ondelete="SET NULL"), nullable=True)

    item_type = Column(String, nullable=False)  # labor | part | service
    description = Column(Text, nullable=False)
    quantity = Column(QTY, nullable=False, default=1)
    unit_price = Column(MONEY, nullable=False, default=0)
    total_price = Column(MONEY, nullable=False, default=0)
    hours = Column(Numeric(8, 2), nullable=True)
    hourly_rate = Column(MONEY, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

    quote = relationship("Quote", back_populates="items")


# =========================
# Invoices
# =========================
class Invoice(Base):
    __tablename__ = "invoices"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="SET NULL"), nullable=True, unique=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    invoice_number = Column(String, nullable=False)
    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default="draft")  # draft | sent | partial | paid | overdue | cancelled

    subtotal = Column(MONEY, nullable=False, default=0)
    tax_rate = Column(Numeric(6, 3), nullable=False, default=0)
    tax_amount = Column(MONEY, nullable=False, default=0)
    total_amount = Column(MONEY, nullable=False, default=0)
    amount_paid = Column(MONEY, nullable=False, default=0)
    amount_due = Column(MONEY, nullable=False, default=0)

    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    paid_date = Column(Date, nullable=True)
    payment_method = Column(String, nullable=True)
    payment_reference = Column(String, nullable=True)
    terms_and_conditions = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    job = relationship("Job", lazy="selectin")
    client = relationship("Client", lazy="selectin")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.order_index",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_invoices_tenant_status", "tenant_id", "status"),
        Index("ix_invoices_tenant_due", "tenant_id", "due_date"),
    )


class InvoiceItem(Base):
    __tablename__ = "invoice_items"
    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    part_id = Column(Integer, ForeignKey("inventory_parts.id", ondelete="SET NULL"), nullable=True)

    item_type = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    quantity = Column(QTY, nullable=False, default=1)
    unit_price = Column(MONEY, nullable=False, default=0)
    total_price = Column(MONEY, nullable=False, default=0)
    hours = Column(Numeric(8, 2), nullable=True)
    hourly_rate = Column(MONEY, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

    invoice = relationship("Invoice", back_populates="items")


# =========================
# Inventory
# =========================
class InventoryPart(Base):
    __tablename__ = "inventory_parts"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)

    part_number = Column(String, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False)
    condition = Column(String, nullable=False, default="new")  # new | used | refurbished
    cost_price = Column(MONEY, nullable=False, default=0)
    selling_price = Column(MONEY, nullable=False, default=0)
    current_stock = Column(Integer, nullable=False, default=0)
    reserved_stock = Column(Integer, nullable=False, default=0)
    minimum_stock = Column(Integer, nullable=False, default=0)
    location = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("tenant_id", "part_number", name="uix_part_tenant_number"),
        Index("ix_parts_tenant_category", "tenant_id", "category"),
    )

    @property
    def available_stock(self) -> int:
        return max(0, (self.current_stock or 0) - (self.reserved_stock or 0))

    @property
    def is_low_stock(self) -> bool:
        return (self.current_stock or 0) <= (self.minimum_stock or 0)


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    part_id = Column(Integer, ForeignKey("inventory_parts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    movement_type = Column(String, nullable=False)  # in | out
    quantity = Column(Integer, nullable=False)
    reason = Column(String, nullable=True)
    reference_type = Column(String, nullable=True)
    reference_id = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    part = relationship("InventoryPart", lazy="selectin")

    __table_args__ = (Index("ix_movements_tenant_part", "tenant_id", "part_id"),)


class JobPartsAllocation(Base):
    __tablename__ = "job_parts_allocation"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    part_id = Column(Integer, ForeignKey("inventory_parts.id", ondelete="CASCADE"), nullable=False)

    quantity_allocated = Column(Integer, nullable=False, default=0)
    quantity_used = Column(Integer, nullable=True)
    allocated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    used_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    used_at = Column(DateTime, nullable=True)
    usage_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    part = relationship("InventoryPart", lazy="selectin")

    __table_args__ = (Index("ix_allocation_job_part", "job_id", "part_id"),)


# =========================
# Calendar
# =========================
class CalendarEvent(Base):
    __tablename__ = "calendar_events"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    assigned_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    all_day = Column(Boolean, nullable=False, default=False, server_default="0")
    event_type = Column(String, nullable=False, default="appointment")  # appointment | job | reminder | other
    status = Column(String, nullable=False, default="scheduled")

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (Index("ix_calendar_tenant_start", "tenant_id", "start_time"),)


# =========================
# Activity log
# =========================
class ActivityLog(Base):
    __tablename__ = "activity_logs"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    entity_type = Column(String, nullable=False)
    entity_id = Column(Integer, nullable=False)
    action = Column(String, nullable=False)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (Index("ix_activity_tenant_entity", "tenant_id", "entity_type", "entity_id"),)
