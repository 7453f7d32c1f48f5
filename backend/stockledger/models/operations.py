from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


# Operation types
OP_INBOUND = "inbound"
OP_TRANSFER = "transfer"
OP_SHIP_BLOGGER = "ship_blogger"
OP_RETURN_BLOGGER = "return_blogger"
OP_SALE = "sale"
OP_SALE_RETURN = "sale_return"
OP_WRITEOFF = "writeoff"
OP_ADJUSTMENT = "adjustment"

OPERATION_TYPES = (
    OP_INBOUND,
    OP_TRANSFER,
    OP_SHIP_BLOGGER,
    OP_RETURN_BLOGGER,
    OP_SALE,
    OP_SALE_RETURN,
    OP_WRITEOFF,
    OP_ADJUSTMENT,
)

# Types that move stock from one location to another (-qty at source, +qty at destination)
TRANSFER_SHAPED_TYPES = frozenset({
    OP_TRANSFER,
    OP_SHIP_BLOGGER,
    OP_RETURN_BLOGGER,
    OP_SALE,
    OP_SALE_RETURN,
    OP_WRITEOFF,
})

# Mark code statuses
MARK_IN_STOCK = "in_stock"
MARK_AT_BLOGGER = "at_blogger"
MARK_SOLD = "sold"
MARK_RETURNED = "returned"
MARK_WRITTEN_OFF = "written_off"
MARK_UNKNOWN = "unknown"

MARK_STATUSES = (
    MARK_IN_STOCK,
    MARK_AT_BLOGGER,
    MARK_SOLD,
    MARK_RETURNED,
    MARK_WRITTEN_OFF,
    MARK_UNKNOWN,
)

MARKING_NOT_HANDLED_TAG = "[MARKING_NOT_HANDLED]"


class Operation(db.Model):
    """
    One business event (receipt, transfer, sale, ...).

    The header is the only user-authored record; lines, stock movements and
    mark code transitions are derived from it by operation_service and are
    rebuilt wholesale when the operation is replaced.

    Promo terms are frozen into *_snapshot columns at submission time.
    """
    __tablename__ = "operations"
    __table_args__ = (
        db.Index("ix_operations_account_occurred", "account_id", "occurred_at"),
        db.Index("ix_operations_account_type", "account_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    from_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    to_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    counterparty_id = db.Column(db.Integer, db.ForeignKey("counterparties.id"), nullable=True)

    promo_code_id = db.Column(db.Integer, db.ForeignKey("promo_codes.id"), nullable=True)
    promo_code_snapshot = db.Column(db.String(64), nullable=True)
    discount_type_snapshot = db.Column(db.String(16), nullable=True)
    discount_value_snapshot = db.Column(db.Integer, nullable=True)

    # Delivery metadata
    sale_channel = db.Column(db.String(64), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    delivery_cost = db.Column(db.Integer, nullable=True)
    delivery_service = db.Column(db.String(128), nullable=True)
    tracking_number = db.Column(db.String(128), nullable=True)

    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "OperationLine",
        backref="operation",
        lazy=True,
        order_by="OperationLine.id",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Operation id={self.id} type={self.type} occurred_at={self.occurred_at}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "account_id": self.account_id,
            "type": self.type,
            "occurred_at": to_utc_z(self.occurred_at),
            "from_location_id": self.from_location_id,
            "to_location_id": self.to_location_id,
            "counterparty_id": self.counterparty_id,
            "promo_code_id": self.promo_code_id,
            "promo_code_snapshot": self.promo_code_snapshot,
            "discount_type_snapshot": self.discount_type_snapshot,
            "discount_value_snapshot": self.discount_value_snapshot,
            "sale_channel": self.sale_channel,
            "city": self.city,
            "delivery_cost": self.delivery_cost,
            "delivery_service": self.delivery_service,
            "tracking_number": self.tracking_number,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OperationLine(db.Model):
    __tablename__ = "operation_lines"
    __table_args__ = (
        db.CheckConstraint("qty > 0", name="ck_operation_lines_qty_positive"),
        db.Index("ix_operation_lines_variant", "variant_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operation_id = db.Column(db.Integer, db.ForeignKey("operations.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False)

    qty = db.Column(db.Integer, nullable=False)

    # Frozen at submission; unit_price_snapshot is rewritten by repricing
    unit_price_snapshot = db.Column(db.Integer, nullable=True)
    unit_cost_snapshot = db.Column(db.Integer, nullable=True)

    line_note = db.Column(db.Text, nullable=True)
    mark_codes = db.Column(db.JSON, nullable=True)
    marking_not_handled = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operation_id": self.operation_id,
            "variant_id": self.variant_id,
            "qty": self.qty,
            "unit_price_snapshot": self.unit_price_snapshot,
            "unit_cost_snapshot": self.unit_cost_snapshot,
            "line_note": self.line_note,
            "mark_codes": list(self.mark_codes or []),
            "marking_not_handled": self.marking_not_handled,
        }


class StockMovement(db.Model):
    """
    Signed quantity movement of a variant at a location (a posting).

    Quantity on hand is never stored; it is SUM(qty_delta) per
    (account, variant, location). Transfer-shaped lines always post a pair
    that sums to zero.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_account_occurred", "account_id", "occurred_at"),
        db.Index("ix_stock_movements_variant_location", "account_id", "variant_id", "location_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)

    operation_id = db.Column(db.Integer, db.ForeignKey("operations.id"), nullable=False, index=True)
    operation_line_id = db.Column(db.Integer, db.ForeignKey("operation_lines.id"), nullable=False, index=True)

    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    qty_delta = db.Column(db.Integer, nullable=False)

    unit_cost_snapshot = db.Column(db.Integer, nullable=True)
    unit_price_snapshot = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "occurred_at": to_utc_z(self.occurred_at),
            "operation_id": self.operation_id,
            "operation_line_id": self.operation_line_id,
            "variant_id": self.variant_id,
            "location_id": self.location_id,
            "qty_delta": self.qty_delta,
            "unit_cost_snapshot": self.unit_cost_snapshot,
            "unit_price_snapshot": self.unit_price_snapshot,
        }


class MarkCode(db.Model):
    """
    Individually marked physical unit.

    Code is unique per account. Status and location reflect the most recent
    operation that claimed the code (last writer wins, not versioned).
    last_operation_id is cleared when that operation is deleted; the status
    is left as it was.
    """
    __tablename__ = "mark_codes"
    __table_args__ = (
        db.UniqueConstraint("account_id", "code", name="uq_mark_codes_account_code"),
        db.Index("ix_mark_codes_account_status", "account_id", "status"),
        db.Index("ix_mark_codes_last_operation", "last_operation_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    code = db.Column(db.String(255), nullable=False)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=True)
    current_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=MARK_UNKNOWN)
    last_operation_id = db.Column(db.Integer, db.ForeignKey("operations.id"), nullable=True)

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
            "code": self.code,
            "variant_id": self.variant_id,
            "current_location_id": self.current_location_id,
            "status": self.status,
            "last_operation_id": self.last_operation_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
