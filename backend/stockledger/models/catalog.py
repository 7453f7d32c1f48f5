from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


class ProductModel(db.Model):
    """Product model grouping sellable variants (sizes, colors)."""
    __tablename__ = "product_models"
    __table_args__ = (
        db.Index("ix_product_models_account_name", "account_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductVariant(db.Model):
    """
    Sellable variant of a product model.

    unit_price is a CACHE of the price history entry effective now; the
    authoritative record is PriceHistoryEntry once any reprice has happened.
    is_marked: every physical unit carries an individual mark code and must be
    tracked through MarkCode on each operation.
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.UniqueConstraint("account_id", "sku", name="uq_product_variants_account_sku"),
        db.Index("ix_product_variants_account_model", "account_id", "model_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    model_id = db.Column(db.Integer, db.ForeignKey("product_models.id"), nullable=False)

    sku = db.Column(db.String(64), nullable=False)
    size = db.Column(db.String(32), nullable=True)
    color = db.Column(db.String(64), nullable=True)
    barcode = db.Column(db.String(128), nullable=True)

    # Minor units (kopecks/cents)
    unit_price = db.Column(db.Integer, nullable=False, default=0)
    unit_cost = db.Column(db.Integer, nullable=False, default=0)

    is_marked = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    model = db.relationship("ProductModel", backref=db.backref("variants", lazy=True, order_by="ProductVariant.id"))

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} sku={self.sku!r} marked={self.is_marked}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "model_id": self.model_id,
            "sku": self.sku,
            "size": self.size,
            "color": self.color,
            "barcode": self.barcode,
            "unit_price": self.unit_price,
            "unit_cost": self.unit_cost,
            "is_marked": self.is_marked,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PriceHistoryEntry(db.Model):
    """
    Effective-dated variant price.

    An entry is valid from effective_at until the next later entry.
    At most one entry per (account, variant, effective_at); re-pricing the same
    instant overwrites unit_price.
    """
    __tablename__ = "product_variant_price_history"
    __table_args__ = (
        db.UniqueConstraint(
            "account_id", "variant_id", "effective_at", name="uq_price_history_account_variant_effective"
        ),
        db.Index("ix_price_history_variant_effective", "variant_id", "effective_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False)

    unit_price = db.Column(db.Integer, nullable=False)
    effective_at = db.Column(db.DateTime(timezone=True), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "unit_price": self.unit_price,
            "effective_at": to_utc_z(self.effective_at),
            "created_at": to_utc_z(self.created_at),
        }


class PromoCode(db.Model):
    """
    Promo code offered through a blogger or campaign.

    Operations freeze code/discount terms at submission time, so later edits
    here never change historical operations.
    """
    __tablename__ = "promo_codes"
    __table_args__ = (
        db.UniqueConstraint("account_id", "code", name="uq_promo_codes_account_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    code = db.Column(db.String(64), nullable=False)
    discount_type = db.Column(db.String(16), nullable=False, default="percent")  # percent | fixed
    discount_value = db.Column(db.Integer, nullable=False, default=0)

    starts_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ends_at = db.Column(db.DateTime(timezone=True), nullable=True)

    blogger_id = db.Column(db.Integer, db.ForeignKey("counterparties.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "starts_at": to_utc_z(self.starts_at),
            "ends_at": to_utc_z(self.ends_at),
            "blogger_id": self.blogger_id,
            "is_active": self.is_active,
            "note": self.note,
        }
