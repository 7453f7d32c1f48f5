# Overview: Read side of the ledger; quantity on hand derived from stock movements.

# backend/stockledger/services/inventory_service.py

from datetime import datetime
from sqlalchemy import func

from ..extensions import db
from ..models import StockMovement
from .account_service import require_account
"""
Stockledger Inventory Invariants & Time Semantics (authoritative)

Canonical time handling:
- All internal datetimes are UTC-naive (tzinfo=None).
- API accepts ISO-8601 with 'Z' or offsets; inputs are normalized to UTC-naive.
- API responses serialize datetimes as ISO-8601 'Z' strings.

As-of semantics:
- All "as_of" filters are inclusive: occurred_at <= as_of.

Inventory model:
- Inventory is ledger-derived from StockMovement rows; never stored as a mutable quantity field.
- Quantity on hand is SUM(qty_delta) per (account, variant, location), optionally as-of.
- Nothing is cached: every read pays a sum over that pair's movement history.
"""


def get_quantity_on_hand(
    account_id: int,
    variant_id: int,
    location_id: int,
    as_of: datetime | None = None,
) -> int:
    """Signed sum of all movements of a variant at a location."""
    require_account(account_id)

    q = db.session.query(
        func.coalesce(func.sum(StockMovement.qty_delta), 0)
    ).filter(
        StockMovement.account_id == account_id,
        StockMovement.variant_id == variant_id,
        StockMovement.location_id == location_id,
    )
    if as_of is not None:
        q = q.filter(StockMovement.occurred_at <= as_of)

    return int(q.scalar() or 0)


def get_stock_on_hand(
    account_id: int,
    *,
    variant_id: int | None = None,
    location_id: int | None = None,
    as_of: datetime | None = None,
    include_zero: bool = False,
) -> list[dict]:
    """
    Grouped on-hand rows: [{variant_id, location_id, qty}].

    Pairs whose movements cancel out are omitted unless include_zero.
    """
    require_account(account_id)

    qty = func.coalesce(func.sum(StockMovement.qty_delta), 0).label("qty")
    q = db.session.query(
        StockMovement.variant_id,
        StockMovement.location_id,
        qty,
    ).filter(StockMovement.account_id == account_id)

    if variant_id is not None:
        q = q.filter(StockMovement.variant_id == variant_id)
    if location_id is not None:
        q = q.filter(StockMovement.location_id == location_id)
    if as_of is not None:
        q = q.filter(StockMovement.occurred_at <= as_of)

    rows = (
        q.group_by(StockMovement.variant_id, StockMovement.location_id)
        .order_by(StockMovement.variant_id.asc(), StockMovement.location_id.asc())
        .all()
    )

    return [
        {"variant_id": row.variant_id, "location_id": row.location_id, "qty": int(row.qty or 0)}
        for row in rows
        if include_zero or int(row.qty or 0) != 0
    ]


def list_stock_movements(
    account_id: int,
    *,
    variant_id: int | None = None,
    location_id: int | None = None,
    operation_id: int | None = None,
    limit: int = 200,
) -> list[StockMovement]:
    require_account(account_id)

    q = db.session.query(StockMovement).filter_by(account_id=account_id)
    if variant_id is not None:
        q = q.filter_by(variant_id=variant_id)
    if location_id is not None:
        q = q.filter_by(location_id=location_id)
    if operation_id is not None:
        q = q.filter_by(operation_id=operation_id)

    return q.order_by(
        StockMovement.occurred_at.desc(),
        StockMovement.id.desc(),
    ).limit(limit).all()
