from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


LOCATION_TYPE_SALES = "sales"
LOCATION_TYPE_PROMO = "promo"
LOCATION_TYPE_BLOGGER = "blogger"
LOCATION_TYPE_SOLD = "sold"
LOCATION_TYPE_SCRAP = "scrap"
LOCATION_TYPE_OTHER = "other"

LOCATION_TYPES = (
    LOCATION_TYPE_SALES,
    LOCATION_TYPE_PROMO,
    LOCATION_TYPE_BLOGGER,
    LOCATION_TYPE_SOLD,
    LOCATION_TYPE_SCRAP,
    LOCATION_TYPE_OTHER,
)

COUNTERPARTY_TYPES = ("blogger", "customer", "supplier", "other")


class Counterparty(db.Model):
    """External party: blogger, customer, supplier."""
    __tablename__ = "counterparties"
    __table_args__ = (
        db.Index("ix_counterparties_account_type", "account_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, default="other")
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=True)
    social_link = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Counterparty id={self.id} type={self.type} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "type": self.type,
            "name": self.name,
            "phone": self.phone,
            "social_link": self.social_link,
            "address": self.address,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class Location(db.Model):
    """
    Physical or virtual stock location.

    Virtual kinds ("sold", "scrap", "blogger") let every movement be a
    two-sided posting: a sale moves stock from a warehouse to "sold" rather
    than destroying it. A blogger location may be tied to one counterparty.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.Index("ix_locations_account_type", "account_id", "type"),
        db.Index("ix_locations_account_counterparty", "account_id", "counterparty_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False, default=LOCATION_TYPE_OTHER)
    counterparty_id = db.Column(db.Integer, db.ForeignKey("counterparties.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    counterparty = db.relationship("Counterparty", backref=db.backref("locations", lazy=True))

    def __repr__(self) -> str:
        return f"<Location id={self.id} type={self.type} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "name": self.name,
            "type": self.type,
            "counterparty_id": self.counterparty_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
