from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

ORDER_STATUS_DRAFT = "DRAFT"
ORDER_STATUS_SUBMIT = "SUBMIT"
ORDER_STATUS_CANCELLED = "CANCELLED"

ORDER_STATUSES = (ORDER_STATUS_DRAFT, ORDER_STATUS_SUBMIT, ORDER_STATUS_CANCELLED)


class Order(db.Model):
    """
    Purchase order document.

    LIFECYCLE:
    1. DRAFT: editable, no stock effect
    2. SUBMIT: stock decremented once per line; only credit/remarks editable
    3. CANCELLED: terminal, reachable from DRAFT only

    INVARIANT: 0 <= credit_cents <= line total minus everything already returned.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "po_no", name="uq_orders_owner_po_no"),
        db.Index("ix_orders_owner_status", "owner_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("store_owners.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    # Human-readable document number (e.g., "PONO202401-0001")
    po_no = db.Column(db.String(32), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_DRAFT)
    credit_cents = db.Column(db.Integer, nullable=False, default=0)
    remarks = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deactivated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    lines = db.relationship(
        "OrderLine",
        back_populates="order",
        order_by="OrderLine.position",
        cascade="all, delete-orphan",
    )
    purchase_returns = db.relationship(
        "PurchaseReturn",
        back_populates="order",
        order_by="PurchaseReturn.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def total_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    @property
    def returned_total_cents(self) -> int:
        return sum(prt.total_cents for prt in self.purchase_returns)

    @property
    def prt_ids(self) -> list[int]:
        return [prt.id for prt in self.purchase_returns]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "po_no": self.po_no,
            "customer_id": self.customer_id,
            "status": self.status,
            "products": [line.to_dict() for line in self.lines],
            "credit_cents": self.credit_cents,
            "remarks": self.remarks,
            "total_cents": self.total_cents,
            "prt_ids": self.prt_ids,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "submitted_at": to_utc_z(self.submitted_at),
            "deactivated_at": to_utc_z(self.deactivated_at),
            "version_id": self.version_id,
        }


class OrderLine(db.Model):
    __tablename__ = "order_lines"
    __table_args__ = (
        db.Index("ix_order_lines_code", "code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)  # input order, 0-based

    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="lines")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.price_cents

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
        }
