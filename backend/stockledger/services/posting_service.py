# Overview: Stock Posting Engine; turns one operation line into signed stock movements.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import (
    StockMovement,
    TRANSFER_SHAPED_TYPES,
    OP_INBOUND,
    OP_ADJUSTMENT,
)
from ..validation import ValidationError
"""
Posting invariants (authoritative)

- inbound:            exactly one posting, +qty at destination.
- transfer-shaped:    exactly two postings, -qty at source and +qty at
                      destination, written together; they sum to zero.
- adjustment:         exactly one posting of qty_delta (defaults to +qty) at
                      destination, else source; zero is rejected.
- Every posting copies the line's unit cost/price snapshots and the
  operation's occurred_at.
- On-hand is only ever computed by summing postings (inventory_service).
"""


def plan_postings(
    operation_type: str,
    *,
    qty: int,
    from_location_id: int | None,
    to_location_id: int | None,
    qty_delta: int | None = None,
) -> list[tuple[int, int]]:
    """
    Pure planning step: the (location_id, signed_qty) pairs a line produces.

    Raises ValidationError when the endpoints needed by the type are missing
    or an adjustment delta is zero.
    """
    if operation_type == OP_INBOUND:
        if to_location_id is None:
            raise ValidationError("to_location_id is required for inbound")
        return [(to_location_id, qty)]

    if operation_type in TRANSFER_SHAPED_TYPES:
        if from_location_id is None or to_location_id is None:
            raise ValidationError(
                "from_location_id and to_location_id are required for this operation type"
            )
        return [(from_location_id, -qty), (to_location_id, qty)]

    if operation_type == OP_ADJUSTMENT:
        delta = qty if qty_delta is None else qty_delta
        if delta == 0:
            raise ValidationError("qty_delta must not be 0 for adjustment")
        location_id = to_location_id if to_location_id is not None else from_location_id
        if location_id is None:
            raise ValidationError("a location is required for adjustment")
        return [(location_id, delta)]

    raise ValidationError(f"unsupported operation type: {operation_type}")


def post_line(
    *,
    account_id: int,
    operation_id: int,
    operation_line_id: int,
    operation_type: str,
    occurred_at: datetime,
    variant_id: int,
    qty: int,
    from_location_id: int | None,
    to_location_id: int | None,
    unit_cost: int | None,
    unit_price: int | None,
    qty_delta: int | None = None,
) -> list[StockMovement]:
    """
    Write the movements for one operation line. Flushes, never commits.
    """
    plan = plan_postings(
        operation_type,
        qty=qty,
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        qty_delta=qty_delta,
    )

    movements = []
    for location_id, signed_qty in plan:
        movement = StockMovement(
            account_id=account_id,
            occurred_at=occurred_at,
            operation_id=operation_id,
            operation_line_id=operation_line_id,
            variant_id=variant_id,
            location_id=location_id,
            qty_delta=signed_qty,
            unit_cost_snapshot=unit_cost,
            unit_price_snapshot=unit_price,
        )
        db.session.add(movement)
        movements.append(movement)

    db.session.flush()
    return movements


def delete_operation_movements(operation_id: int) -> int:
    """Remove every movement of an operation. Returns the number deleted."""
    return (
        db.session.query(StockMovement)
        .filter_by(operation_id=operation_id)
        .delete(synchronize_session="fetch")
    )
