# backend/stockledger/services/directory_service.py
"""
Location & Counterparty Directory.

OWNERSHIP: every lookup is filtered by account_id. A location or counterparty
owned by another account is reported as not found, never as forbidden, so ids
of other accounts are not revealed.

The ledger only reads from the directory, with one exception: blogger
locations are created on demand through get_or_create_blogger_location().
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import (
    Counterparty,
    Location,
    LOCATION_TYPE_SALES,
    LOCATION_TYPE_PROMO,
    LOCATION_TYPE_BLOGGER,
    LOCATION_TYPE_SOLD,
    LOCATION_TYPE_SCRAP,
)
from ..validation import NotFoundError, ValidationError, enforce_rules_location, enforce_rules_counterparty


DEFAULT_BLOGGER_LOCATION_NAME = "Blogger"

# One location per kind, created by ensure_default_locations()
DEFAULT_LOCATIONS = (
    ("Warehouse: Sales", LOCATION_TYPE_SALES),
    ("Warehouse: Promo/PR", LOCATION_TYPE_PROMO),
    ("Customer", LOCATION_TYPE_SOLD),
    (DEFAULT_BLOGGER_LOCATION_NAME, LOCATION_TYPE_BLOGGER),
    ("Write-off", LOCATION_TYPE_SCRAP),
)


def require_location(account_id: int, location_id: int) -> Location:
    location = db.session.query(Location).filter_by(id=location_id, account_id=account_id).first()
    if location is None:
        raise NotFoundError(f"location {location_id} not found")
    return location


def require_counterparty(account_id: int, counterparty_id: int) -> Counterparty:
    counterparty = (
        db.session.query(Counterparty).filter_by(id=counterparty_id, account_id=account_id).first()
    )
    if counterparty is None:
        raise NotFoundError(f"counterparty {counterparty_id} not found")
    return counterparty


def find_location_by_type(account_id: int, location_type: str) -> Location | None:
    """First (oldest) active location of the given kind, or None."""
    return (
        db.session.query(Location)
        .filter_by(account_id=account_id, type=location_type, is_active=True)
        .order_by(Location.id.asc())
        .first()
    )


def get_or_create_blogger_location(account_id: int, counterparty: Counterparty | None = None) -> Location:
    """
    Blogger location for a counterparty, created on first use.

    With a counterparty: the blogger location tied to it, or a new one named
    after it. Without: the account's generic blogger location, or a new one
    with the default name. An untied location is preferred over one that
    belongs to a specific counterparty.
    """
    query = db.session.query(Location).filter_by(
        account_id=account_id,
        type=LOCATION_TYPE_BLOGGER,
        is_active=True,
    )
    if counterparty is not None:
        location = query.filter_by(counterparty_id=counterparty.id).order_by(Location.id.asc()).first()
    else:
        location = (
            query.filter(Location.counterparty_id.is_(None)).order_by(Location.id.asc()).first()
            or query.order_by(Location.id.asc()).first()
        )
    if location is not None:
        return location

    location = Location(
        account_id=account_id,
        name=counterparty.name if counterparty is not None else DEFAULT_BLOGGER_LOCATION_NAME,
        type=LOCATION_TYPE_BLOGGER,
        counterparty_id=counterparty.id if counterparty is not None else None,
        is_active=True,
    )
    db.session.add(location)
    db.session.flush()

    current_app.logger.info(
        "Created blogger location %s (%r) for account %s", location.id, location.name, account_id
    )
    return location


def ensure_default_locations(account_id: int) -> list[Location]:
    """
    Create any missing default location kinds. Idempotent.

    Returns the newly created locations. Caller commits.
    """
    existing_types = {
        row.type
        for row in db.session.query(Location.type).filter_by(account_id=account_id).all()
    }
    created = []
    for name, location_type in DEFAULT_LOCATIONS:
        if location_type in existing_types:
            continue
        location = Location(account_id=account_id, name=name, type=location_type, is_active=True)
        db.session.add(location)
        created.append(location)
    db.session.flush()
    return created


def create_location(account_id: int, patch: dict) -> Location:
    enforce_rules_location(patch)
    counterparty_id = patch.get("counterparty_id")
    if counterparty_id is not None:
        require_counterparty(account_id, counterparty_id)

    location = Location(account_id=account_id, **patch)
    db.session.add(location)
    db.session.flush()
    return location


def create_counterparty(account_id: int, patch: dict) -> Counterparty:
    enforce_rules_counterparty(patch)
    if not (patch.get("name") or "").strip():
        raise ValidationError("name cannot be blank")

    counterparty = Counterparty(account_id=account_id, **patch)
    db.session.add(counterparty)
    db.session.flush()
    return counterparty


def list_locations(account_id: int, *, include_inactive: bool = False) -> list[Location]:
    query = db.session.query(Location).filter_by(account_id=account_id)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(Location.id.asc()).all()


def list_counterparties(account_id: int, *, counterparty_type: str | None = None) -> list[Counterparty]:
    query = db.session.query(Counterparty).filter_by(account_id=account_id)
    if counterparty_type:
        query = query.filter_by(type=counterparty_type)
    return query.order_by(Counterparty.name.asc(), Counterparty.id.asc()).all()
