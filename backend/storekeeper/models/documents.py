from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

class PurchaseReturn(db.Model):
    """
    Purchase return against a submitted order.

    IMMUTABLE: created once, never edited. Creating one restocks every
    returned line and may lower the order's credit.
    """
    __tablename__ = "purchase_returns"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "prt_no", name="uq_purchase_returns_owner_prt_no"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("store_owners.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # Human-readable document number (e.g., "PRTNO202401-0001")
    prt_no = db.Column(db.String(32), nullable=False)

    reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="purchase_returns")
    lines = db.relationship(
        "PurchaseReturnLine",
        back_populates="purchase_return",
        order_by="PurchaseReturnLine.position",
        cascade="all, delete-orphan",
    )

    @property
    def total_cents(self) -> int:
        return sum(line.quantity * line.price_cents for line in self.lines)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "prt_no": self.prt_no,
            "order_id": self.order_id,
            "order": self.order.po_no if self.order else None,
            "returned_products": [line.to_dict() for line in self.lines],
            "reason": self.reason,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
        }


class PurchaseReturnLine(db.Model):
    __tablename__ = "purchase_return_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_return_id = db.Column(db.Integer, db.ForeignKey("purchase_returns.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    purchase_return = db.relationship("PurchaseReturn", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
        }


class DocumentSequence(db.Model):
    """
    Atomic per-owner document counters.

    One row per (owner_id, document_type). `last_number` holds the full
    most recently issued number (e.g. "PONO202401-0007"); `version` is
    bumped on every allocation and used as a compare-and-swap guard.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "document_type", name="uq_doc_sequences_owner_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("store_owners.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    last_number = db.Column(db.String(32), nullable=True)
    version = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "document_type": self.document_type,
            "last_number": self.last_number,
            "version": self.version,
            "updated_at": to_utc_z(self.updated_at),
        }
