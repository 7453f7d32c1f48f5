# backend/stockledger/services/mark_code_service.py
"""
Serialized-Unit Tracker (mark codes).

WHY: Marked goods carry an individual code per physical unit. Each operation
line of a marked variant must name exactly which units moved, and every code's
record must follow the most recent operation that touched it.

STATE MACHINE:
States: in_stock, at_blogger, sold, returned, written_off, unknown.
Transitions are driven only by operation type:

    ship_blogger   -> at_blogger   @ destination
    return_blogger -> in_stock     @ destination
    sale           -> sold         @ destination
    writeoff       -> written_off  @ destination
    anything else  -> in_stock     @ destination, else source

There is no legal-predecessor check: any operation may move a unit to any
status, and the first sighting of a code simply takes the implied status.

DEFERRED MARKING:
A line flagged marking_not_handled skips validation and transitions entirely;
its note is tagged with MARKING_NOT_HANDLED_TAG so it can be found later.
"""
from __future__ import annotations

from ..extensions import db
from ..models import (
    MarkCode,
    MARK_STATUSES,
    MARKING_NOT_HANDLED_TAG,
    OP_SHIP_BLOGGER,
    OP_RETURN_BLOGGER,
    OP_SALE,
    OP_WRITEOFF,
    MARK_IN_STOCK,
    MARK_AT_BLOGGER,
    MARK_SOLD,
    MARK_WRITTEN_OFF,
)
from ..validation import ValidationError, NotFoundError
from stockledger.time_utils import utcnow


_STATUS_BY_TYPE = {
    OP_SHIP_BLOGGER: MARK_AT_BLOGGER,
    OP_RETURN_BLOGGER: MARK_IN_STOCK,
    OP_SALE: MARK_SOLD,
    OP_WRITEOFF: MARK_WRITTEN_OFF,
}


def normalize_codes(raw_codes) -> list[str]:
    """Coerce the submitted code list to stripped strings. Blank codes are rejected."""
    if raw_codes is None:
        return []
    if not isinstance(raw_codes, (list, tuple)):
        raise ValidationError("mark_codes must be a list")
    codes = []
    for raw in raw_codes:
        if raw is None or not isinstance(raw, (str, int)) or isinstance(raw, bool):
            raise ValidationError("mark codes must be strings")
        code = str(raw).strip()
        if not code:
            raise ValidationError("mark codes must not be blank")
        codes.append(code)
    return codes


def validate_codes(codes: list[str], qty: int) -> None:
    """
    Raises:
        ValidationError: count differs from qty, or a code repeats
    """
    if len(codes) != qty:
        raise ValidationError("mark codes count must equal qty")
    if len(set(codes)) != len(codes):
        raise ValidationError("mark codes must be unique")


def resolve_transition(
    operation_type: str,
    from_location_id: int | None,
    to_location_id: int | None,
) -> tuple[str, int | None]:
    """(status, location_id) a unit ends up in after an operation of this type."""
    status = _STATUS_BY_TYPE.get(operation_type)
    if status is not None:
        return status, to_location_id
    return MARK_IN_STOCK, to_location_id if to_location_id is not None else from_location_id


def tag_deferred_note(line_note: str | None) -> str:
    """Append the deferred-marking tag once."""
    note = (line_note or "").strip()
    if MARKING_NOT_HANDLED_TAG in note:
        return note
    return f"{note} {MARKING_NOT_HANDLED_TAG}".strip()


def apply_codes(
    *,
    account_id: int,
    operation_id: int,
    operation_type: str,
    variant_id: int,
    codes: list[str],
    from_location_id: int | None,
    to_location_id: int | None,
) -> list[MarkCode]:
    """
    Upsert each code's record (last writer wins). Flushes, never commits.

    Codes must already be validated with validate_codes().
    """
    status, location_id = resolve_transition(operation_type, from_location_id, to_location_id)

    existing = {
        row.code: row
        for row in db.session.query(MarkCode)
        .filter(MarkCode.account_id == account_id, MarkCode.code.in_(codes))
        .all()
    } if codes else {}

    now = utcnow()
    records = []
    for code in codes:
        record = existing.get(code)
        if record is None:
            record = MarkCode(account_id=account_id, code=code)
            db.session.add(record)
        record.variant_id = variant_id
        record.current_location_id = location_id
        record.status = status
        record.last_operation_id = operation_id
        record.updated_at = now
        records.append(record)

    db.session.flush()
    return records


def delete_codes_touched_by(account_id: int, operation_id: int) -> int:
    """Drop mark code records whose last touch was this operation (replace path)."""
    return (
        db.session.query(MarkCode)
        .filter_by(account_id=account_id, last_operation_id=operation_id)
        .delete(synchronize_session="fetch")
    )


def release_codes_touched_by(account_id: int, operation_id: int) -> int:
    """Clear the back-reference to a deleted operation; status and location are kept."""
    return (
        db.session.query(MarkCode)
        .filter_by(account_id=account_id, last_operation_id=operation_id)
        .update({MarkCode.last_operation_id: None}, synchronize_session="fetch")
    )


def get_mark_code(account_id: int, code: str) -> MarkCode:
    record = db.session.query(MarkCode).filter_by(account_id=account_id, code=(code or "").strip()).first()
    if record is None:
        raise NotFoundError(f"mark code {code!r} not found")
    return record


def list_mark_codes(
    account_id: int,
    *,
    status: str | None = None,
    variant_id: int | None = None,
    location_id: int | None = None,
    limit: int = 500,
) -> list[MarkCode]:
    if status is not None and status not in MARK_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(MARK_STATUSES)}")

    query = db.session.query(MarkCode).filter_by(account_id=account_id)
    if status is not None:
        query = query.filter_by(status=status)
    if variant_id is not None:
        query = query.filter_by(variant_id=variant_id)
    if location_id is not None:
        query = query.filter_by(current_location_id=location_id)
    return query.order_by(MarkCode.code.asc()).limit(limit).all()
