from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

class Product(db.Model):
    """
    Catalog product with its on-hand stock.

    `quantity` is only ever changed through the stock ledger
    (services/stock_service.py), as a single SQL increment.
    Products are soft-deleted (is_active=False).
    """
    __tablename__ = "products"
    # Codes are unique among an owner's *active* products (enforced in products_service)
    __table_args__ = (
        db.Index("ix_products_owner_code", "owner_id", "code"),
        db.Index("ix_products_owner_active", "owner_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("store_owners.id"), nullable=False, index=True)

    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=True)
    description = db.Column(db.Text, nullable=True)
    unit = db.Column(db.String(16), nullable=False, default="PCS")

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    deactivated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    owner = db.relationship("StoreOwner", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "code": self.code,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "unit": self.unit,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "quantity": self.quantity,
            "is_active": self.is_active,
            "deactivated_at": to_utc_z(self.deactivated_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only audit row for every stock ledger adjustment.

    IMMUTABLE: never updated or deleted. quantity_after is the product's
    quantity immediately after the increment was applied.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_owner_product", "owner_id", "product_id"),
        db.Index("ix_stock_movements_reference", "reference"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("store_owners.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product_code = db.Column(db.String(64), nullable=False)

    quantity_delta = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)
    movement_type = db.Column(db.String(32), nullable=False)  # ORDER_SUBMIT, PURCHASE_RETURN, RESTOCK
    reference = db.Column(db.String(64), nullable=True)  # PONO.../PRTNO... document number

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stock_movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "product_id": self.product_id,
            "product_code": self.product_code,
            "quantity_delta": self.quantity_delta,
            "quantity_after": self.quantity_after,
            "movement_type": self.movement_type,
            "reference": self.reference,
            "occurred_at": to_utc_z(self.occurred_at),
        }
