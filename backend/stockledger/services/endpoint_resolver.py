"""
Operation Type Resolver.

Fills in missing source/destination locations from the operation type so that
posting and mark code tracking always see complete endpoints.

RULES (applied in order, only filling gaps):
- ship_blogger:   counterparty required; destination -> the counterparty's
                  blogger location (created on first shipment)
- return_blogger: source -> the counterparty's blogger location if it has one,
                  else the account's blogger location (created if missing)
- sale:           destination -> "sold"
- writeoff:       destination -> "scrap"
- sale_return:    destination -> "sales", source -> "sold"

After defaulting, required endpoints are checked per type. A missing endpoint
is a validation failure, never retried.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import (
    Counterparty,
    Location,
    OPERATION_TYPES,
    TRANSFER_SHAPED_TYPES,
    OP_INBOUND,
    OP_SHIP_BLOGGER,
    OP_RETURN_BLOGGER,
    OP_SALE,
    OP_SALE_RETURN,
    OP_WRITEOFF,
    OP_ADJUSTMENT,
    LOCATION_TYPE_BLOGGER,
    LOCATION_TYPE_SALES,
    LOCATION_TYPE_SOLD,
    LOCATION_TYPE_SCRAP,
)
from ..validation import ValidationError
from . import directory_service


@dataclass
class ResolvedEndpoints:
    from_location_id: int | None
    to_location_id: int | None
    counterparty_id: int | None


def _default_by_type(account_id: int, location_type: str) -> int | None:
    location = directory_service.find_location_by_type(account_id, location_type)
    return location.id if location else None


def _blogger_source(account_id: int, counterparty: Counterparty | None) -> int:
    if counterparty is not None:
        tied = (
            db.session.query(Location)
            .filter_by(
                account_id=account_id,
                type=LOCATION_TYPE_BLOGGER,
                counterparty_id=counterparty.id,
                is_active=True,
            )
            .order_by(Location.id.asc())
            .first()
        )
        if tied is not None:
            return tied.id
    return directory_service.get_or_create_blogger_location(account_id).id


def validate_required_endpoints(operation_type: str, endpoints: ResolvedEndpoints) -> None:
    if operation_type == OP_INBOUND:
        if endpoints.to_location_id is None:
            raise ValidationError("to_location_id is required for inbound")
    elif operation_type in TRANSFER_SHAPED_TYPES:
        if endpoints.from_location_id is None or endpoints.to_location_id is None:
            raise ValidationError(
                f"from_location_id and to_location_id are required for {operation_type}"
            )
        if endpoints.from_location_id == endpoints.to_location_id:
            raise ValidationError("from_location_id and to_location_id must differ")
    elif operation_type == OP_ADJUSTMENT:
        if endpoints.to_location_id is None and endpoints.from_location_id is None:
            raise ValidationError("a location is required for adjustment")


def resolve_endpoints(
    account_id: int,
    operation_type: str,
    *,
    from_location_id: int | None = None,
    to_location_id: int | None = None,
    counterparty_id: int | None = None,
) -> ResolvedEndpoints:
    """
    Resolve and validate endpoints for an operation.

    Explicit ids are checked for existence and ownership; defaults come from
    the directory. May create a blogger location (flushed, not committed).

    Raises:
        ValidationError: unknown type, missing counterparty or endpoint
        NotFoundError: explicit id unknown to this account
    """
    if operation_type not in OPERATION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(OPERATION_TYPES)}")

    if from_location_id is not None:
        directory_service.require_location(account_id, from_location_id)
    if to_location_id is not None:
        directory_service.require_location(account_id, to_location_id)

    counterparty = None
    if counterparty_id is not None:
        counterparty = directory_service.require_counterparty(account_id, counterparty_id)

    if operation_type == OP_SHIP_BLOGGER:
        if counterparty is None:
            raise ValidationError("counterparty_id is required for ship_blogger")
        if to_location_id is None:
            to_location_id = directory_service.get_or_create_blogger_location(account_id, counterparty).id

    if operation_type == OP_RETURN_BLOGGER and from_location_id is None:
        from_location_id = _blogger_source(account_id, counterparty)

    if operation_type == OP_SALE and to_location_id is None:
        to_location_id = _default_by_type(account_id, LOCATION_TYPE_SOLD)

    if operation_type == OP_WRITEOFF and to_location_id is None:
        to_location_id = _default_by_type(account_id, LOCATION_TYPE_SCRAP)

    if operation_type == OP_SALE_RETURN:
        if to_location_id is None:
            to_location_id = _default_by_type(account_id, LOCATION_TYPE_SALES)
        if from_location_id is None:
            from_location_id = _default_by_type(account_id, LOCATION_TYPE_SOLD)

    endpoints = ResolvedEndpoints(
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        counterparty_id=counterparty_id,
    )
    validate_required_endpoints(operation_type, endpoints)
    return endpoints
