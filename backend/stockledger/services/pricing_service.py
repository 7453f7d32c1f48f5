# Overview: Price history reads and the point-in-time price recalculation engine.

# backend/stockledger/services/pricing_service.py

from __future__ import annotations

from bisect import bisect_right
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import (
    Operation,
    OperationLine,
    PriceHistoryEntry,
    ProductModel,
    ProductVariant,
    StockMovement,
)
from ..validation import NotFoundError, ValidationError, coerce_datetime, coerce_int, enforce_rules_price
from .account_service import lock_account_for_write
from .concurrency import atomic, run_with_retry
from stockledger.time_utils import PRICE_HISTORY_EPOCH, utcnow, to_utc_z
"""
Price history semantics (authoritative)

- An entry is valid from effective_at (inclusive) until the next later entry.
- The price of a record occurring at T is the latest entry with
  effective_at <= T. Ties cannot happen: (variant, effective_at) is unique.
- ProductVariant.unit_price caches the entry effective "now".
- Repricing rewrites unit_price_snapshot on lines and movements whose
  operation occurred at or after the new entry's effective_at, each with the
  price effective at its own occurrence time, so an older edit never
  overrides a later one.
- Unit cost snapshots are never touched by repricing.
- Recalculation is one transaction with no batching; its duration grows with
  the number of affected rows.
"""


def require_variant(account_id: int, variant_id: int) -> ProductVariant:
    variant = db.session.query(ProductVariant).filter_by(id=variant_id, account_id=account_id).first()
    if variant is None:
        raise NotFoundError(f"variant {variant_id} not found")
    return variant


def list_price_history(account_id: int, variant_id: int) -> list[PriceHistoryEntry]:
    require_variant(account_id, variant_id)
    return (
        db.session.query(PriceHistoryEntry)
        .filter_by(account_id=account_id, variant_id=variant_id)
        .order_by(PriceHistoryEntry.effective_at.asc())
        .all()
    )


def get_history_price_at(account_id: int, variant_id: int, at: datetime) -> int | None:
    """Price from history effective at `at`, or None if history is empty before `at`."""
    entry = (
        db.session.query(PriceHistoryEntry)
        .filter(
            PriceHistoryEntry.account_id == account_id,
            PriceHistoryEntry.variant_id == variant_id,
            PriceHistoryEntry.effective_at <= at,
        )
        .order_by(PriceHistoryEntry.effective_at.desc())
        .first()
    )
    return entry.unit_price if entry else None


def get_price_at(account_id: int, variant_id: int, at: datetime) -> int:
    """Effective price at `at`, falling back to the variant's cached price."""
    variant = require_variant(account_id, variant_id)
    price = get_history_price_at(account_id, variant_id, at)
    return variant.unit_price if price is None else price


def resolve_line_price(
    account_id: int,
    variant: ProductVariant,
    occurred_at: datetime,
    price_override: int | None = None,
) -> int:
    """
    Unit price snapshot for a new line.

    Preference: explicit override, else the history entry effective at the
    operation time, else the variant's live price.
    """
    if price_override is not None:
        return price_override
    price = get_history_price_at(account_id, variant.id, occurred_at)
    return variant.unit_price if price is None else price


class _PriceTimeline:
    """Sorted history entries with point-in-time lookup."""

    def __init__(self, entries: list[PriceHistoryEntry]):
        self._times = [e.effective_at for e in entries]
        self._prices = [e.unit_price for e in entries]

    def price_at(self, at: datetime) -> int | None:
        idx = bisect_right(self._times, at)
        if idx == 0:
            return None
        return self._prices[idx - 1]


def _seed_history_if_empty(account_id: int, variant: ProductVariant) -> None:
    exists = (
        db.session.query(PriceHistoryEntry.id)
        .filter_by(account_id=account_id, variant_id=variant.id)
        .first()
    )
    if exists is not None:
        return
    db.session.add(PriceHistoryEntry(
        account_id=account_id,
        variant_id=variant.id,
        unit_price=variant.unit_price,
        effective_at=PRICE_HISTORY_EPOCH,
    ))
    db.session.flush()


def _upsert_history(account_id: int, variant_id: int, unit_price: int, effective_at: datetime) -> None:
    entry = (
        db.session.query(PriceHistoryEntry)
        .filter_by(account_id=account_id, variant_id=variant_id, effective_at=effective_at)
        .first()
    )
    if entry is None:
        entry = PriceHistoryEntry(
            account_id=account_id,
            variant_id=variant_id,
            effective_at=effective_at,
        )
        db.session.add(entry)
    entry.unit_price = unit_price
    db.session.flush()


def _recalculate_snapshots(account_id: int, variant_id: int, effective_at: datetime) -> tuple[int, int]:
    """Rewrite price snapshots from effective_at onward. Returns (lines, movements) touched."""
    timeline = _PriceTimeline(
        db.session.query(PriceHistoryEntry)
        .filter_by(account_id=account_id, variant_id=variant_id)
        .order_by(PriceHistoryEntry.effective_at.asc())
        .all()
    )

    line_rows = (
        db.session.query(OperationLine, Operation.occurred_at)
        .join(Operation, OperationLine.operation_id == Operation.id)
        .filter(
            Operation.account_id == account_id,
            OperationLine.variant_id == variant_id,
            Operation.occurred_at >= effective_at,
        )
        .all()
    )
    lines_recalculated = 0
    for line, occurred_at in line_rows:
        price = timeline.price_at(occurred_at)
        if price is None:
            continue
        line.unit_price_snapshot = price
        lines_recalculated += 1

    movement_rows = (
        db.session.query(StockMovement, Operation.occurred_at)
        .join(Operation, StockMovement.operation_id == Operation.id)
        .filter(
            StockMovement.account_id == account_id,
            Operation.account_id == account_id,
            StockMovement.variant_id == variant_id,
            Operation.occurred_at >= effective_at,
        )
        .all()
    )
    movements_recalculated = 0
    for movement, occurred_at in movement_rows:
        price = timeline.price_at(occurred_at)
        if price is None:
            continue
        movement.unit_price_snapshot = price
        movements_recalculated += 1

    db.session.flush()
    return lines_recalculated, movements_recalculated


def _refresh_cached_price(account_id: int, variant: ProductVariant) -> None:
    price = get_history_price_at(account_id, variant.id, utcnow())
    if price is not None:
        variant.unit_price = price
    db.session.flush()


def _validate_reprice_args(unit_price, effective_at) -> tuple[int, datetime]:
    if unit_price is None:
        raise ValidationError("unit_price is required")
    price = coerce_int(unit_price, "unit_price")
    enforce_rules_price(price)
    if effective_at is None or (isinstance(effective_at, str) and not effective_at.strip()):
        raise ValidationError("effective_at is required")
    return price, coerce_datetime(effective_at, "effective_at")


def _apply_price(account_id: int, variant: ProductVariant, unit_price: int, effective_at: datetime) -> dict:
    _seed_history_if_empty(account_id, variant)
    _upsert_history(account_id, variant.id, unit_price, effective_at)
    lines, movements = _recalculate_snapshots(account_id, variant.id, effective_at)
    _refresh_cached_price(account_id, variant)
    return {
        "variant_id": variant.id,
        "unit_price": unit_price,
        "effective_at": to_utc_z(effective_at),
        "lines_recalculated": lines,
        "postings_recalculated": movements,
    }


def reprice_variant(account_id: int, variant_id: int, unit_price, effective_at) -> dict:
    """
    Apply a new effective-dated price to a variant and recalculate history.

    Returns:
        dict with variant_id, unit_price, effective_at, lines_recalculated,
        postings_recalculated

    Raises:
        ValidationError: negative/missing price or missing effective_at
        NotFoundError: variant unknown to this account
        AccessDeniedError: no account
    """
    price, effective_dt = _validate_reprice_args(unit_price, effective_at)

    def _op():
        def _unit():
            lock_account_for_write(account_id)
            variant = require_variant(account_id, variant_id)
            return _apply_price(account_id, variant, price, effective_dt)

        return atomic(_unit)

    result = run_with_retry(_op)
    current_app.logger.info(
        "Repriced variant %s to %s from %s: %s lines, %s postings recalculated",
        variant_id,
        price,
        result["effective_at"],
        result["lines_recalculated"],
        result["postings_recalculated"],
    )
    return result


def reprice_model(account_id: int, model_id: int, unit_price, effective_at) -> dict:
    """
    Apply the same effective-dated price to every variant of a product model.

    All variants are repriced in one transaction. Returns summed counts.
    """
    price, effective_dt = _validate_reprice_args(unit_price, effective_at)

    def _op():
        def _unit():
            lock_account_for_write(account_id)
            model = db.session.query(ProductModel).filter_by(id=model_id, account_id=account_id).first()
            if model is None:
                raise NotFoundError(f"product model {model_id} not found")

            variants = (
                db.session.query(ProductVariant)
                .filter_by(account_id=account_id, model_id=model_id)
                .order_by(ProductVariant.id.asc())
                .all()
            )
            lines = 0
            movements = 0
            for variant in variants:
                result = _apply_price(account_id, variant, price, effective_dt)
                lines += result["lines_recalculated"]
                movements += result["postings_recalculated"]

            return {
                "model_id": model_id,
                "variants_repriced": len(variants),
                "unit_price": price,
                "effective_at": to_utc_z(effective_dt),
                "lines_recalculated": lines,
                "postings_recalculated": movements,
            }

        return atomic(_unit)

    result = run_with_retry(_op)
    current_app.logger.info(
        "Repriced model %s (%s variants): %s lines, %s postings recalculated",
        model_id,
        result["variants_repriced"],
        result["lines_recalculated"],
        result["postings_recalculated"],
    )
    return result
