# backend/stockledger/services/operation_service.py
"""
Operation Transaction Orchestrator.

WHY: An operation is the only user-authored ledger record. Everything else
(lines, stock movements, mark code transitions) is derived from it, and the
whole set must commit together or not at all.

SEQUENCE (submit):
1. Parse and validate the payload (shape, quantities, variants, mark codes)
2. Resolve endpoints from the operation type (endpoint_resolver)
3. Insert the header with a frozen promo snapshot
4. Per line: resolve price, snapshot cost, insert line, post stock
   (posting_service), track mark codes (mark_code_service)

REPLACE is destructive: movements, lines and mark codes last touched by the
operation are deleted, the header is overwritten and step 4 re-runs. Marked
lines can only be edited with marking deferred.

DELETE releases mark codes (clears their back-reference, keeps status) and
removes movements, lines and header.

ATOMICITY: every entry point runs as one unit of work under the account's
write lock. Any error rolls back the whole attempt; only lock contention is
retried (run_with_retry), business errors go straight to the caller.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import (
    Operation,
    OperationLine,
    ProductVariant,
    PromoCode,
    OPERATION_TYPES,
    OP_ADJUSTMENT,
)
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_bool,
    coerce_datetime,
    coerce_int,
    coerce_optional_int,
    enforce_rules_price,
)
from . import endpoint_resolver, mark_code_service, posting_service
from .account_service import lock_account_for_write, require_account
from .concurrency import atomic, run_with_retry
from .pricing_service import require_variant, resolve_line_price


HEADER_TEXT_FIELDS = ("sale_channel", "city", "delivery_service", "tracking_number", "note")


@dataclass
class LineInput:
    variant_id: int
    qty: int
    unit_price_snapshot: int | None = None
    line_note: str | None = None
    mark_codes: list[str] = field(default_factory=list)
    marking_not_handled: bool = False
    qty_delta: int | None = None


@dataclass
class OperationInput:
    type: str
    occurred_at: datetime
    from_location_id: int | None = None
    to_location_id: int | None = None
    counterparty_id: int | None = None
    promo_code_id: int | None = None
    delivery_cost: int | None = None
    text_fields: dict = field(default_factory=dict)
    lines: list[LineInput] = field(default_factory=list)


@dataclass
class _PreparedLine:
    line: LineInput
    variant: ProductVariant

    @property
    def tracks_codes(self) -> bool:
        return bool(self.variant.is_marked) and not self.line.marking_not_handled


def _optional_text(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError(f"{key} must be a string")
    value = str(value).strip()
    return value or None


def _parse_line(raw, index: int) -> LineInput:
    if not isinstance(raw, dict):
        raise ValidationError(f"line {index + 1}: must be an object")

    if raw.get("variant_id") is None:
        raise ValidationError(f"line {index + 1}: variant_id is required")
    variant_id = coerce_int(raw["variant_id"], "variant_id")

    qty = coerce_optional_int(raw.get("qty"), "qty") or 0
    if qty <= 0:
        raise ValidationError("qty must be > 0")

    price = coerce_optional_int(raw.get("unit_price_snapshot"), "unit_price_snapshot")
    enforce_rules_price(price, "unit_price_snapshot")

    return LineInput(
        variant_id=variant_id,
        qty=qty,
        unit_price_snapshot=price,
        line_note=_optional_text(raw, "line_note"),
        mark_codes=mark_code_service.normalize_codes(raw.get("mark_codes")),
        marking_not_handled=coerce_bool(raw.get("marking_not_handled"), "marking_not_handled"),
        qty_delta=coerce_optional_int(raw.get("qty_delta"), "qty_delta"),
    )


def parse_operation_payload(payload) -> OperationInput:
    """
    Validate and normalize a submitted operation.

    Raises:
        ValidationError: malformed payload, unknown type, bad line list,
            non-positive qty, zero adjustment delta
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    op_type = payload.get("type")
    if op_type not in OPERATION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(OPERATION_TYPES)}")

    raw_lines = payload.get("lines")
    if not isinstance(raw_lines, list):
        raise ValidationError("lines must be an array")

    lines = [_parse_line(raw, i) for i, raw in enumerate(raw_lines)]

    if op_type == OP_ADJUSTMENT:
        for line in lines:
            if line.qty_delta == 0:
                raise ValidationError("qty_delta must not be 0 for adjustment")

    delivery_cost = coerce_optional_int(payload.get("delivery_cost"), "delivery_cost")
    if delivery_cost is not None and delivery_cost < 0:
        raise ValidationError("delivery_cost must be >= 0")

    return OperationInput(
        type=op_type,
        occurred_at=coerce_datetime(payload.get("occurred_at"), "occurred_at"),
        from_location_id=coerce_optional_int(payload.get("from_location_id"), "from_location_id"),
        to_location_id=coerce_optional_int(payload.get("to_location_id"), "to_location_id"),
        counterparty_id=coerce_optional_int(payload.get("counterparty_id"), "counterparty_id"),
        promo_code_id=coerce_optional_int(payload.get("promo_code_id"), "promo_code_id"),
        delivery_cost=delivery_cost,
        text_fields={key: _optional_text(payload, key) for key in HEADER_TEXT_FIELDS},
        lines=lines,
    )


def _prepare_lines(account_id: int, op_input: OperationInput, *, editing: bool) -> list[_PreparedLine]:
    """Resolve variants and validate mark codes before anything is written."""
    prepared = []
    seen_codes: set[str] = set()
    for line in op_input.lines:
        variant = require_variant(account_id, line.variant_id)
        item = _PreparedLine(line=line, variant=variant)

        if variant.is_marked and not line.marking_not_handled:
            if editing:
                raise ConflictError(
                    "editing marked operations is not supported; enable marking_not_handled"
                )
            mark_code_service.validate_codes(line.mark_codes, line.qty)
            duplicates = seen_codes.intersection(line.mark_codes)
            if duplicates:
                raise ValidationError("mark codes must be unique")
            seen_codes.update(line.mark_codes)

        prepared.append(item)
    return prepared


def _check_marked_lines_kept(operation: Operation, prepared: list[_PreparedLine]) -> None:
    """
    Existing marked lines may only be replaced by deferred lines of the same
    variant; dropping them would orphan unit state.
    """
    deferred_variants = {
        item.variant.id for item in prepared if item.variant.is_marked and item.line.marking_not_handled
    }
    for existing in operation.lines:
        if existing.marking_not_handled:
            continue
        variant = db.session.get(ProductVariant, existing.variant_id)
        if variant is not None and variant.is_marked and variant.id not in deferred_variants:
            raise ConflictError(
                "operation has marked lines; resubmit them with marking_not_handled to edit"
            )


def _resolve_promo(account_id: int, promo_code_id: int | None) -> PromoCode | None:
    if promo_code_id is None:
        return None
    promo = db.session.query(PromoCode).filter_by(id=promo_code_id, account_id=account_id).first()
    if promo is None:
        raise NotFoundError(f"promo code {promo_code_id} not found")
    return promo


def _apply_header(
    operation: Operation,
    op_input: OperationInput,
    endpoints: endpoint_resolver.ResolvedEndpoints,
    promo: PromoCode | None,
) -> None:
    operation.type = op_input.type
    operation.occurred_at = op_input.occurred_at
    operation.from_location_id = endpoints.from_location_id
    operation.to_location_id = endpoints.to_location_id
    operation.counterparty_id = endpoints.counterparty_id
    operation.promo_code_id = promo.id if promo else None
    operation.promo_code_snapshot = promo.code if promo else None
    operation.discount_type_snapshot = promo.discount_type if promo else None
    operation.discount_value_snapshot = promo.discount_value if promo else None
    operation.delivery_cost = op_input.delivery_cost
    for key, value in op_input.text_fields.items():
        setattr(operation, key, value)


def _write_lines(account_id: int, operation: Operation, prepared: list[_PreparedLine]) -> None:
    for item in prepared:
        line, variant = item.line, item.variant

        price = resolve_line_price(account_id, variant, operation.occurred_at, line.unit_price_snapshot)
        cost = variant.unit_cost

        note = line.line_note
        if line.marking_not_handled:
            note = mark_code_service.tag_deferred_note(note)

        op_line = OperationLine(
            variant_id=variant.id,
            qty=line.qty,
            unit_price_snapshot=price,
            unit_cost_snapshot=cost,
            line_note=note,
            mark_codes=list(line.mark_codes) if variant.is_marked and line.mark_codes else None,
            marking_not_handled=line.marking_not_handled,
        )
        operation.lines.append(op_line)
        db.session.flush()

        posting_service.post_line(
            account_id=account_id,
            operation_id=operation.id,
            operation_line_id=op_line.id,
            operation_type=operation.type,
            occurred_at=operation.occurred_at,
            variant_id=variant.id,
            qty=line.qty,
            from_location_id=operation.from_location_id,
            to_location_id=operation.to_location_id,
            unit_cost=cost,
            unit_price=price,
            qty_delta=line.qty_delta if operation.type == OP_ADJUSTMENT else None,
        )

        if item.tracks_codes:
            mark_code_service.apply_codes(
                account_id=account_id,
                operation_id=operation.id,
                operation_type=operation.type,
                variant_id=variant.id,
                codes=line.mark_codes,
                from_location_id=operation.from_location_id,
                to_location_id=operation.to_location_id,
            )


def _require_operation(account_id: int, operation_id: int) -> Operation:
    operation = db.session.query(Operation).filter_by(id=operation_id, account_id=account_id).first()
    if operation is None:
        raise NotFoundError(f"operation {operation_id} not found")
    return operation


def _resolve(account_id: int, op_input: OperationInput) -> endpoint_resolver.ResolvedEndpoints:
    return endpoint_resolver.resolve_endpoints(
        account_id,
        op_input.type,
        from_location_id=op_input.from_location_id,
        to_location_id=op_input.to_location_id,
        counterparty_id=op_input.counterparty_id,
    )


def submit_operation(account_id: int, payload: dict) -> int:
    """
    Create an operation with all derived records.

    Returns:
        int: new operation id

    Raises:
        AccessDeniedError: no/inactive account
        ValidationError: bad payload, missing endpoint, mark code count/duplicates
        NotFoundError: unknown variant, location, counterparty or promo code
    """
    op_input = parse_operation_payload(payload)

    def _op():
        def _unit():
            lock_account_for_write(account_id)
            prepared = _prepare_lines(account_id, op_input, editing=False)
            promo = _resolve_promo(account_id, op_input.promo_code_id)
            endpoints = _resolve(account_id, op_input)

            operation = Operation(account_id=account_id)
            _apply_header(operation, op_input, endpoints, promo)
            db.session.add(operation)
            db.session.flush()

            _write_lines(account_id, operation, prepared)
            return operation.id

        return atomic(_unit)

    operation_id = run_with_retry(_op)
    current_app.logger.info(
        "Operation %s submitted: type=%s lines=%s account=%s",
        operation_id, op_input.type, len(op_input.lines), account_id,
    )
    return operation_id


def replace_operation(account_id: int, operation_id: int, payload: dict) -> int:
    """
    Fully replace an operation: derived state is deleted and rebuilt.

    Raises:
        ConflictError: a marked line is edited without marking_not_handled
        plus everything submit_operation raises
    """
    op_input = parse_operation_payload(payload)

    def _op():
        def _unit():
            lock_account_for_write(account_id)
            operation = _require_operation(account_id, operation_id)
            prepared = _prepare_lines(account_id, op_input, editing=True)
            _check_marked_lines_kept(operation, prepared)
            promo = _resolve_promo(account_id, op_input.promo_code_id)
            endpoints = _resolve(account_id, op_input)

            posting_service.delete_operation_movements(operation.id)
            operation.lines.clear()
            mark_code_service.delete_codes_touched_by(account_id, operation.id)
            db.session.flush()

            _apply_header(operation, op_input, endpoints, promo)
            db.session.flush()

            _write_lines(account_id, operation, prepared)
            return operation.id

        return atomic(_unit)

    result = run_with_retry(_op)
    current_app.logger.info(
        "Operation %s replaced: type=%s lines=%s account=%s",
        operation_id, op_input.type, len(op_input.lines), account_id,
    )
    return result


def delete_operation(account_id: int, operation_id: int) -> bool:
    """
    Delete an operation with its lines and movements.

    Mark codes last touched by it keep their status and location; only the
    back-reference is cleared.
    """
    def _op():
        def _unit():
            lock_account_for_write(account_id)
            operation = _require_operation(account_id, operation_id)

            released = mark_code_service.release_codes_touched_by(account_id, operation.id)
            posting_service.delete_operation_movements(operation.id)
            db.session.delete(operation)
            db.session.flush()
            return released

        return atomic(_unit)

    released = run_with_retry(_op)
    current_app.logger.info(
        "Operation %s deleted (account=%s, mark codes released=%s)", operation_id, account_id, released
    )
    return True


def get_operation(account_id: int, operation_id: int) -> Operation:
    require_account(account_id)
    return _require_operation(account_id, operation_id)


def list_operations(
    account_id: int,
    *,
    operation_type: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Operation]:
    require_account(account_id)
    if operation_type is not None and operation_type not in OPERATION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(OPERATION_TYPES)}")

    query = db.session.query(Operation).filter_by(account_id=account_id)
    if operation_type is not None:
        query = query.filter_by(type=operation_type)
    return (
        query.order_by(Operation.occurred_at.desc(), Operation.id.desc())
        .offset(max(offset, 0))
        .limit(min(max(limit, 1), 500))
        .all()
    )
