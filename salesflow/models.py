"""
SalesFlow – Domain Models

Documents and their ordered item lists:
- Query (sales enquiry) -> QueryItem, SupplierResponse
- Quotation -> QuotationItem
- PurchaseOrder -> PurchaseOrderItem
- Invoice -> InvoiceItem

Supporting records:
- User (role + capability flags)
- ActivityLog (append-only audit trail)
- Suggestion (autocomplete pools learned from queries)

Linkage:
- Quotation.query_id, PurchaseOrder.query_id/quotation_id and
  Invoice.query_id/quotation_id/purchase_order_id are explicit nullable
  references. Deleting or purging a referenced document nulls them in the
  same transaction (see lifecycle/documents/retention).

IMPORTANT:
- Totals are always recomputed server-side from item rows (recalc_totals).
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .extensions import db
from . import finance


QUERY_STATUSES = ("pending", "submitted")
QUOTATION_TYPES = ("local", "foreign", "import")
ROLES = ("admin", "user")
CAPABILITIES = ("queries", "quotations", "purchase_orders", "invoices", "admin")
ACTIVITY_ACTIONS = ("create", "update", "delete", "export", "backup", "auto_backup")


def utcnow() -> datetime:
    """Naive UTC timestamp (stored as-is in SQLite and PostgreSQL)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _json_value(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def column_dict(instance, exclude: tuple[str, ...] = ()) -> dict:
    """Scalar columns of a model instance, JSON-ready."""
    return {
        column.name: _json_value(getattr(instance, column.name))
        for column in instance.__table__.columns
        if column.name not in exclude
    }


RATE_PLACES = 4


def store_scale(line, money_fields=(), rate_fields=()) -> None:
    """Round priced inputs to their column scale so recomputing from stored rows is stable."""
    for name in money_fields:
        setattr(line, name, finance.scaled(getattr(line, name)))
    for name in rate_fields:
        setattr(line, name, finance.scaled(getattr(line, name), RATE_PLACES))


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    """System login user with a role and a fixed set of capability flags."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    email = db.Column(db.String(255), nullable=True)
    full_name = db.Column(db.String(255), nullable=True)

    role = db.Column(db.String(20), nullable=False, default="user", index=True)
    permissions = db.Column(db.JSON, nullable=False, default=lambda: {"queries": True})

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> dict:
        data = column_dict(self, exclude=("password_hash",))
        data["permissions"] = dict(self.permissions or {})
        return data

    def __repr__(self):
        return f"<User {self.username}>"


# ---------------------------------------------------------------------
# Autocomplete pools
# ---------------------------------------------------------------------
class Suggestion(db.Model):
    """Distinct free-text values (org, client, supplier) learned from queries."""

    __tablename__ = "suggestions"

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(20), nullable=False, index=True)
    value = db.Column(db.String(255), nullable=False)

    __table_args__ = (db.UniqueConstraint("kind", "value", name="uq_suggestion_kind_value"),)


# ---------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------
class Query(db.Model):
    """Sales enquiry. status is pending/submitted; deleted_at is the soft-delete marker."""

    __tablename__ = "queries"

    id = db.Column(db.Integer, primary_key=True)

    org_department = db.Column(db.String(255))
    client_case_number = db.Column(db.String(100), index=True)
    date = db.Column(db.Date)
    last_submission_date = db.Column(db.Date)
    client_name = db.Column(db.String(255), index=True)
    query_sent_to = db.Column(db.Text)
    attachment_path = db.Column(db.String(500))

    nsets_case_number = db.Column(db.String(100), index=True)
    enquiry_date = db.Column(db.Date)
    last_submission_excel_date = db.Column(db.Date)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "QueryItem",
        back_populates="query_doc",
        order_by="QueryItem.serial_number",
        cascade="all, delete-orphan",
    )

    supplier_responses = db.relationship(
        "SupplierResponse",
        back_populates="query_doc",
        order_by="SupplierResponse.id",
        cascade="all, delete-orphan",
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def suppliers(self) -> list[str]:
        """query_sent_to split into supplier names (comma or newline separated)."""
        raw = (self.query_sent_to or "").replace("\n", ",")
        return [part.strip() for part in raw.split(",") if part.strip()]

    def to_dict(self, with_items: bool = True) -> dict:
        data = column_dict(self)
        if with_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["supplier_responses"] = [r.to_dict() for r in self.supplier_responses]
        return data

    def __repr__(self):
        return f"<Query {self.id} {self.status}>"


class QueryItem(db.Model):
    __tablename__ = "query_items"

    id = db.Column(db.Integer, primary_key=True)

    query_id = db.Column(
        db.Integer,
        db.ForeignKey("queries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    serial_number = db.Column(db.Integer, nullable=False)
    manufacturer_number = db.Column(db.String(120))
    stockist_number = db.Column(db.String(120))
    coo = db.Column(db.String(80))
    brand = db.Column(db.String(120))
    description = db.Column(db.Text)
    au = db.Column(db.String(30))
    quantity = db.Column(db.Integer)
    remarks = db.Column(db.Text)

    query_doc = db.relationship("Query", back_populates="items")

    def to_dict(self) -> dict:
        return column_dict(self)


class SupplierResponse(db.Model):
    """Supplier answer to a query. Written only by a transition to 'submitted'."""

    __tablename__ = "supplier_responses"

    id = db.Column(db.Integer, primary_key=True)

    query_id = db.Column(
        db.Integer,
        db.ForeignKey("queries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    supplier_name = db.Column(db.String(255), nullable=False)
    response_status = db.Column(db.String(120), nullable=False)
    attachment_path = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=utcnow)

    query_doc = db.relationship("Query", back_populates="supplier_responses")

    def to_dict(self) -> dict:
        return column_dict(self)


# ---------------------------------------------------------------------
# Quotations
# ---------------------------------------------------------------------
class Quotation(db.Model):
    __tablename__ = "quotations"

    id = db.Column(db.Integer, primary_key=True)

    quotation_number = db.Column(db.String(100), index=True)
    date = db.Column(db.Date)
    to_client = db.Column(db.String(255))

    query_id = db.Column(
        db.Integer,
        db.ForeignKey("queries.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    currency = db.Column(db.String(10), nullable=False, default="USD")
    quotation_type = db.Column(db.String(20), nullable=False, default="local")
    attachment = db.Column(db.String(500))

    total_without_gst = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    # GST for local quotations, manual freight otherwise
    gst_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    grand_total = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    origin_query = db.relationship("Query", foreign_keys=[query_id], backref=db.backref("quotations", lazy=True))

    items = db.relationship(
        "QuotationItem",
        back_populates="quotation",
        order_by="QuotationItem.serial_number",
        cascade="all, delete-orphan",
    )

    def recalc_totals(self, manual_freight=None):
        """
        Recompute line totals, supplier unit prices and document totals.

        manual_freight is only used for non-local quotations; None means no freight.
        """
        for line in self.items:
            store_scale(line, ("unit_price", "supplier_price", "supplier_up"), ("profit_factor", "exchange_rate"))
            line.total_price = finance.line_total(line.quantity, line.unit_price)
            computed = finance.supplier_unit_price(line.supplier_price, line.profit_factor, line.exchange_rate)
            if computed is not None:
                line.supplier_up = computed

        self.total_without_gst = finance.subtotal(line.total_price for line in self.items)
        self.gst_amount = finance.quotation_surcharge(self.total_without_gst, self.quotation_type, manual_freight)
        self.grand_total = finance.grand_total(self.total_without_gst, self.gst_amount)

    def to_dict(self, with_items: bool = True) -> dict:
        data = column_dict(self)
        if with_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class QuotationItem(db.Model):
    __tablename__ = "quotation_items"

    id = db.Column(db.Integer, primary_key=True)

    quotation_id = db.Column(
        db.Integer,
        db.ForeignKey("quotations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    serial_number = db.Column(db.Integer, nullable=False)
    manufacturer_number = db.Column(db.String(120))
    stockist_number = db.Column(db.String(120))
    coo = db.Column(db.String(80))
    brand = db.Column(db.String(120))
    description = db.Column(db.Text)
    au = db.Column(db.String(30))
    quantity = db.Column(db.Integer)

    unit_price = db.Column(db.Numeric(12, 2))
    total_price = db.Column(db.Numeric(12, 2))

    # Internal costing, never shown to the client
    supplier_price = db.Column(db.Numeric(12, 2))
    profit_factor = db.Column(db.Numeric(10, 4))
    exchange_rate = db.Column(db.Numeric(12, 4))
    supplier_up = db.Column(db.Numeric(12, 2))

    quotation = db.relationship("Quotation", back_populates="items")

    def to_dict(self) -> dict:
        return column_dict(self)


# ---------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------
class PurchaseOrder(db.Model):
    __tablename__ = "purchase_orders"

    id = db.Column(db.Integer, primary_key=True)

    po_number = db.Column(db.String(100), index=True)
    date = db.Column(db.Date)
    supplier_name = db.Column(db.String(255))
    supplier_address = db.Column(db.Text)
    po_currency = db.Column(db.String(10), nullable=False, default="INR")

    query_id = db.Column(
        db.Integer,
        db.ForeignKey("queries.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    quotation_id = db.Column(
        db.Integer,
        db.ForeignKey("quotations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    total_price = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    freight_charges = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    grand_total = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        order_by="PurchaseOrderItem.serial_number",
        cascade="all, delete-orphan",
    )

    def recalc_totals(self):
        for line in self.items:
            store_scale(line, ("unit_price",))
            line.total_price = finance.line_total(line.quantity, line.unit_price)
        self.total_price = finance.subtotal(line.total_price for line in self.items)
        self.freight_charges = finance.money(self.freight_charges)
        self.grand_total = finance.purchase_order_total(self.total_price, self.freight_charges)

    def to_dict(self, with_items: bool = True) -> dict:
        data = column_dict(self)
        if with_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"

    id = db.Column(db.Integer, primary_key=True)

    purchase_order_id = db.Column(
        db.Integer,
        db.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    serial_number = db.Column(db.Integer, nullable=False)
    manufacturer_number = db.Column(db.String(120))
    stockist_number = db.Column(db.String(120))
    coo = db.Column(db.String(80))
    brand = db.Column(db.String(120))
    description = db.Column(db.Text)
    au = db.Column(db.String(30))
    quantity = db.Column(db.Integer)

    unit_price = db.Column(db.Numeric(12, 2))
    total_price = db.Column(db.Numeric(12, 2))

    delivery_time = db.Column(db.String(120))
    remarks = db.Column(db.Text)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")

    def to_dict(self) -> dict:
        return column_dict(self)


# ---------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------
class Invoice(db.Model):
    __tablename__ = "invoices"

    id = db.Column(db.Integer, primary_key=True)

    ref_no = db.Column(db.String(100), index=True)
    ar_no = db.Column(db.String(100), nullable=True)
    date = db.Column(db.Date)
    invoice_number = db.Column(db.String(100), index=True)
    to_client = db.Column(db.String(255))

    query_id = db.Column(
        db.Integer,
        db.ForeignKey("queries.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    quotation_id = db.Column(
        db.Integer,
        db.ForeignKey("quotations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    purchase_order_id = db.Column(
        db.Integer,
        db.ForeignKey("purchase_orders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    total_without_gst = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    gst_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    grand_total = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.serial_number",
        cascade="all, delete-orphan",
    )

    def recalc_totals(self):
        """Invoices always carry 18% GST."""
        for line in self.items:
            store_scale(line, ("unit_price", "supplier_up", "calculated_price"), ("profit_factor", "exchange_rate"))
            line.total_price = finance.line_total(line.quantity, line.unit_price)
            computed = finance.supplier_unit_price(line.supplier_up, line.profit_factor, line.exchange_rate)
            if computed is not None:
                line.calculated_price = computed

        self.total_without_gst = finance.subtotal(line.total_price for line in self.items)
        self.gst_amount = finance.gst(self.total_without_gst)
        self.grand_total = finance.grand_total(self.total_without_gst, self.gst_amount)

    def to_dict(self, with_items: bool = True) -> dict:
        data = column_dict(self)
        if with_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class InvoiceItem(db.Model):
    __tablename__ = "invoice_items"

    id = db.Column(db.Integer, primary_key=True)

    invoice_id = db.Column(
        db.Integer,
        db.ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    serial_number = db.Column(db.Integer, nullable=False)
    manufacturer_number = db.Column(db.String(120))
    stockist_number = db.Column(db.String(120))
    coo = db.Column(db.String(80))
    brand = db.Column(db.String(120))
    description = db.Column(db.Text)
    au = db.Column(db.String(30))
    quantity = db.Column(db.Integer)

    unit_price = db.Column(db.Numeric(12, 2))
    total_price = db.Column(db.Numeric(12, 2))

    # supplier_up here is the supplier's unit price (a quotation's supplier_price)
    supplier_up = db.Column(db.Numeric(12, 2))
    profit_factor = db.Column(db.Numeric(10, 4))
    exchange_rate = db.Column(db.Numeric(12, 4))
    calculated_price = db.Column(db.Numeric(12, 2))

    invoice = db.relationship("Invoice", back_populates="items")

    def to_dict(self) -> dict:
        return column_dict(self)


# ---------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------
class ActivityLog(db.Model):
    """Append-only activity trail. Never updated or deleted by the application."""

    __tablename__ = "activity_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    username = db.Column(db.String(150), nullable=False)

    action = db.Column(db.String(20), nullable=False, index=True)
    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=True, index=True)
    entity_name = db.Column(db.String(255), nullable=True)

    file_path = db.Column(db.String(500), nullable=True)
    file_name = db.Column(db.String(255), nullable=True)
    details = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return column_dict(self)
