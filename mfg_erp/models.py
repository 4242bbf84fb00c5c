"""
Manufacturing ERP – Domain Models

Entities whose balances and quantities are owned by the engine:
- Fund / FundUsage (investment money and every draw against it)
- RawMaterial / Purchase (material stock and the purchases that fed it)
- ManufacturingBatch / MaterialUsage / ManufacturingCost / ProductAdjustment
- Inventory (per product, per location) / InventoryTransfer / InventoryAdjustment
- Sale / SaleItem / Payment

Reference data (User, Product, Customer) and the outbound sinks
(ActivityLog, Notification) live here too.

IMPORTANT:
- Money and material quantities are Numeric(12, 2) and handled as Decimal.
- Product inventory quantities are whole units (Integer).
- Fund, RawMaterial and Inventory carry a version column; a stale write raises
  StaleDataError which the services translate to ConcurrencyConflict.
- Status fields are closed enums, never free strings.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .extensions import db


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _to_decimal(value) -> Decimal:
    """Convert Numeric/None to Decimal safely."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value))


def _money(x: Decimal) -> Decimal:
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


def _enum_column(enum_cls, **kwargs):
    """Enum column persisted by value (varchar + check on the Python side)."""
    return db.Column(
        db.Enum(
            enum_cls,
            native_enum=False,
            length=30,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        **kwargs,
    )


# ---------------------------------------------------------------------
# Closed vocabularies
# ---------------------------------------------------------------------
class Role(str, enum.Enum):
    OWNER = "owner"
    INCHARGE = "incharge"
    SHOPKEEPER = "shopkeeper"


class FundType(str, enum.Enum):
    INVESTMENT = "investment"
    RETURN = "return"


class FundStatus(str, enum.Enum):
    ACTIVE = "active"
    DEPLETED = "depleted"
    RETURNED = "returned"


class FundUsageType(str, enum.Enum):
    PURCHASE = "purchase"
    MANUFACTURING_COST = "manufacturing_cost"
    OTHER = "other"


class BatchStatus(str, enum.Enum):
    """
    Production pipeline, in order. COMPLETED is terminal.

    Transition table:
    - non-owners: only to the next state
    - owners: to any strictly later state
    """

    PENDING = "pending"
    CUTTING = "cutting"
    STITCHING = "stitching"
    IRONING = "ironing"
    PACKAGING = "packaging"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return list(BatchStatus).index(self)

    @property
    def is_terminal(self) -> bool:
        return self is BatchStatus.COMPLETED

    def next_status(self) -> "BatchStatus | None":
        ordered = list(BatchStatus)
        if self.rank + 1 < len(ordered):
            return ordered[self.rank + 1]
        return None

    def allowed_targets(self, skip_allowed: bool = False) -> tuple["BatchStatus", ...]:
        later = tuple(s for s in BatchStatus if s.rank > self.rank)
        return later if skip_allowed else later[:1]


class CostType(str, enum.Enum):
    LABOR = "labor"
    MATERIAL = "material"
    PACKAGING = "packaging"
    ZIPPER = "zipper"
    STICKER = "sticker"
    LOGO = "logo"
    TAG = "tag"
    MISC = "misc"
    OVERHEAD = "overhead"
    ELECTRICITY = "electricity"
    MAINTENANCE = "maintenance"
    OTHER = "other"


class Location(str, enum.Enum):
    MANUFACTURING = "manufacturing"
    WHOLESALE = "wholesale"
    TRANSIT = "transit"


class TransferStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"

    @property
    def is_resolved(self) -> bool:
        return self is not TransferStatus.PENDING


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    OTHER = "other"


class ActionType(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ERROR = "error"


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    """System login user. The role drives every permission check in the engine."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(150), nullable=False, default="")

    role = _enum_column(Role, nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER

    def __repr__(self):
        return f"<User {self.username} ({self.role.value})>"


# ---------------------------------------------------------------------
# Fund ledger
# ---------------------------------------------------------------------
class Fund(db.Model):
    """
    An investment handed from one user to another, drawn down by FundUsage rows.

    Invariants:
    - balance >= 0
    - status DEPLETED iff balance == 0 (for investment funds)
    - balance changes only through FundUsage creation or reversal
    """

    __tablename__ = "funds"

    id = db.Column(db.Integer, primary_key=True)

    fund_type = _enum_column(FundType, name="type", nullable=False, default=FundType.INVESTMENT)
    original_amount = db.Column(db.Numeric(12, 2), nullable=False)
    balance = db.Column(db.Numeric(12, 2), nullable=False)
    status = _enum_column(FundStatus, nullable=False, default=FundStatus.ACTIVE, index=True)

    from_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    to_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    description = db.Column(db.Text, nullable=True)

    # A return row points at the investment it returns
    reference_fund_id = db.Column(
        db.Integer,
        db.ForeignKey("funds.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    version = db.Column(db.Integer, nullable=False)

    from_user = db.relationship("User", foreign_keys=[from_user_id])
    to_user = db.relationship("User", foreign_keys=[to_user_id])
    reference_fund = db.relationship("Fund", remote_side=[id])

    usages = db.relationship(
        "FundUsage",
        back_populates="fund",
        order_by="FundUsage.id",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def used_amount(self) -> Decimal:
        return _money(_to_decimal(self.original_amount) - _to_decimal(self.balance))

    def __repr__(self):
        return f"<Fund {self.id} {self.status.value} balance={self.balance}>"


class FundUsage(db.Model):
    """One draw against a fund, created by exactly one fund-consuming transaction."""

    __tablename__ = "fund_usages"

    id = db.Column(db.Integer, primary_key=True)

    fund_id = db.Column(db.Integer, db.ForeignKey("funds.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    usage_type = _enum_column(FundUsageType, name="type", nullable=False)

    # Purchase.id / ManufacturingCost.id / return Fund.id depending on usage_type
    reference_id = db.Column(db.Integer, nullable=True, index=True)

    used_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    used_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    notes = db.Column(db.Text, nullable=True)

    fund = db.relationship("Fund", back_populates="usages")


# ---------------------------------------------------------------------
# Raw materials & procurement
# ---------------------------------------------------------------------
class RawMaterial(db.Model):
    __tablename__ = "raw_materials"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(150), unique=True, nullable=False, index=True)
    unit = db.Column(db.String(30), nullable=False, default="unit")
    stock_quantity = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    min_stock_level = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_low_stock(self) -> bool:
        return _to_decimal(self.stock_quantity) <= _to_decimal(self.min_stock_level)

    def __repr__(self):
        return f"<RawMaterial {self.name} stock={self.stock_quantity}>"


class Purchase(db.Model):
    """
    Raw-material purchase.

    Effect while it exists: material stock += quantity, and (if fund_id) a
    FundUsage of total_amount against the fund.
    """

    __tablename__ = "purchases"

    id = db.Column(db.Integer, primary_key=True)

    material_id = db.Column(db.Integer, db.ForeignKey("raw_materials.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)

    fund_id = db.Column(db.Integer, db.ForeignKey("funds.id"), nullable=True, index=True)
    fund_usage_id = db.Column(
        db.Integer,
        db.ForeignKey("fund_usages.id", ondelete="SET NULL"),
        nullable=True,
    )

    vendor_name = db.Column(db.String(150), nullable=True)
    vendor_contact = db.Column(db.String(150), nullable=True)
    invoice_number = db.Column(db.String(80), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    purchased_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    purchase_date = db.Column(db.Date, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    material = db.relationship("RawMaterial")
    fund = db.relationship("Fund")
    fund_usage = db.relationship("FundUsage")


# ---------------------------------------------------------------------
# Catalogue (reference data)
# ---------------------------------------------------------------------
class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(150), nullable=False)
    sku = db.Column(db.String(80), unique=True, nullable=False, index=True)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    inventory = db.relationship("Inventory", back_populates="product", lazy=True)

    def __repr__(self):
        return f"<Product {self.sku}>"


class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(150), nullable=False)
    phone = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(150), nullable=True)
    address = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)


# ---------------------------------------------------------------------
# Manufacturing
# ---------------------------------------------------------------------
class ManufacturingBatch(db.Model):
    __tablename__ = "manufacturing_batches"

    id = db.Column(db.Integer, primary_key=True)

    batch_number = db.Column(db.String(40), unique=True, nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity_produced = db.Column(db.Integer, nullable=False, default=0)
    # Units credited to manufacturing inventory at completion
    quantity_credited = db.Column(db.Integer, nullable=False, default=0)

    status = _enum_column(BatchStatus, nullable=False, default=BatchStatus.PENDING, index=True)

    start_date = db.Column(db.Date, nullable=False)
    expected_completion_date = db.Column(db.Date, nullable=True)
    completion_date = db.Column(db.Date, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    status_notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    status_changed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    status_changed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    product = db.relationship("Product")

    material_usages = db.relationship(
        "MaterialUsage",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="MaterialUsage.id",
        lazy=True,
    )
    costs = db.relationship(
        "ManufacturingCost",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="ManufacturingCost.id",
        lazy=True,
    )
    adjustments = db.relationship(
        "ProductAdjustment",
        back_populates="batch",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def total_cost(self) -> Decimal:
        total = Decimal("0.00")
        for cost in self.costs:
            total += _to_decimal(cost.amount)
        return _money(total)

    def __repr__(self):
        return f"<ManufacturingBatch {self.batch_number} {self.status.value}>"


class MaterialUsage(db.Model):
    __tablename__ = "material_usages"

    id = db.Column(db.Integer, primary_key=True)

    batch_id = db.Column(
        db.Integer,
        db.ForeignKey("manufacturing_batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    material_id = db.Column(db.Integer, db.ForeignKey("raw_materials.id"), nullable=False, index=True)
    quantity_used = db.Column(db.Numeric(12, 2), nullable=False)

    recorded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    recorded_date = db.Column(db.DateTime, default=datetime.utcnow)

    batch = db.relationship("ManufacturingBatch", back_populates="material_usages")
    material = db.relationship("RawMaterial")


class ManufacturingCost(db.Model):
    __tablename__ = "manufacturing_costs"

    id = db.Column(db.Integer, primary_key=True)

    batch_id = db.Column(
        db.Integer,
        db.ForeignKey("manufacturing_batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    cost_type = _enum_column(CostType, nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)

    fund_id = db.Column(db.Integer, db.ForeignKey("funds.id"), nullable=True)
    fund_usage_id = db.Column(
        db.Integer,
        db.ForeignKey("fund_usages.id", ondelete="SET NULL"),
        nullable=True,
    )

    recorded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    recorded_date = db.Column(db.DateTime, default=datetime.utcnow)

    batch = db.relationship("ManufacturingBatch", back_populates="costs")
    fund_usage = db.relationship("FundUsage")


class ProductAdjustment(db.Model):
    """Reason-carrying correction of a completed batch's produced quantity."""

    __tablename__ = "product_adjustments"

    id = db.Column(db.Integer, primary_key=True)

    batch_id = db.Column(
        db.Integer,
        db.ForeignKey("manufacturing_batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    original_quantity = db.Column(db.Integer, nullable=False)
    adjusted_quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)

    adjusted_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    adjusted_at = db.Column(db.DateTime, default=datetime.utcnow)

    batch = db.relationship("ManufacturingBatch", back_populates="adjustments")


# ---------------------------------------------------------------------
# Location-partitioned inventory
# ---------------------------------------------------------------------
class Inventory(db.Model):
    __tablename__ = "inventory"

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    location = _enum_column(Location, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    version = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product", back_populates="inventory")

    __table_args__ = (db.UniqueConstraint("product_id", "location", name="uq_inventory_product_location"),)
    __mapper_args__ = {"version_id_col": version}


class InventoryTransfer(db.Model):
    """
    Two-party stock hand-off. Creation moves nothing; confirmation moves the stock.
    """

    __tablename__ = "inventory_transfers"

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    batch_id = db.Column(
        db.Integer,
        db.ForeignKey("manufacturing_batches.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    quantity = db.Column(db.Integer, nullable=False)

    from_location = _enum_column(Location, nullable=False)
    to_location = _enum_column(Location, nullable=False)
    status = _enum_column(TransferStatus, nullable=False, default=TransferStatus.PENDING, index=True)

    initiated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    shopkeeper_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    resolved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    resolved_at = db.Column(db.DateTime, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    transfer_date = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    product = db.relationship("Product")
    batch = db.relationship("ManufacturingBatch")
    assignee = db.relationship("User", foreign_keys=[shopkeeper_id])


class InventoryAdjustment(db.Model):
    """Manual, reason-carrying correction of one inventory location."""

    __tablename__ = "inventory_adjustments"

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    location = _enum_column(Location, nullable=False)
    quantity_change = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)

    adjusted_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    adjusted_at = db.Column(db.DateTime, default=datetime.utcnow)


# ---------------------------------------------------------------------
# Sales & payments
# ---------------------------------------------------------------------
class Sale(db.Model):
    __tablename__ = "sales"

    id = db.Column(db.Integer, primary_key=True)

    invoice_number = db.Column(db.String(40), unique=True, nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sale_date = db.Column(db.Date, nullable=False)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    net_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    payment_status = _enum_column(PaymentStatus, nullable=False, default=PaymentStatus.UNPAID, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = db.relationship("Customer")

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
        lazy=True,
    )
    payments = db.relationship(
        "Payment",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="Payment.id",
        lazy=True,
    )

    def active_payments(self):
        return [p for p in self.payments if not p.is_voided]

    def paid_amount(self) -> Decimal:
        total = Decimal("0.00")
        for payment in self.active_payments():
            total += _to_decimal(payment.amount)
        return _money(total)

    def amount_due(self) -> Decimal:
        due = _to_decimal(self.net_amount) - self.paid_amount()
        return _money(max(due, Decimal("0.00")))


class SaleItem(db.Model):
    __tablename__ = "sale_items"

    id = db.Column(db.Integer, primary_key=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")


class Payment(db.Model):
    """Payment against a sale. Voiding flags the row; it is never deleted."""

    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    method = _enum_column(PaymentMethod, nullable=False, default=PaymentMethod.CASH)
    reference_number = db.Column(db.String(80), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    recorded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    voided_at = db.Column(db.DateTime, nullable=True)
    voided_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    void_reason = db.Column(db.Text, nullable=True)

    sale = db.relationship("Sale", back_populates="payments")

    @property
    def is_voided(self) -> bool:
        return self.voided_at is not None


# ---------------------------------------------------------------------
# Outbound sinks
# ---------------------------------------------------------------------
class ActivityLog(db.Model):
    """One row per completed (or failed) engine operation."""

    __tablename__ = "activity_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action_type = _enum_column(ActionType, nullable=False, index=True)
    module = db.Column(db.String(50), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    entity_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(50), nullable=False)
    message = db.Column(db.Text, nullable=False)
    related_id = db.Column(db.Integer, nullable=True)
    is_read = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
