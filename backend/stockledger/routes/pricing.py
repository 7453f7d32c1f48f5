# backend/stockledger/routes/pricing.py
"""
Effective-dated pricing routes.

Repricing rewrites price snapshots of already recorded operations, so these
are the only routes whose cost grows with the size of the history.
"""
from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import pricing_service
from .errors import error_response


pricing_bp = Blueprint("pricing", __name__, url_prefix="/api")


@pricing_bp.post("/variants/<int:variant_id>/price")
@require_auth
def reprice_variant(variant_id: int):
    """
    Request body:
    {
        "unit_price": int (>= 0),
        "effective_at": ISO-8601
    }

    Returns:
        200: {variant_id, unit_price, effective_at, lines_recalculated, postings_recalculated}
        400: Invalid price or timestamp
        404: Variant not found
    """
    data = request.get_json(silent=True) or {}

    try:
        result = pricing_service.reprice_variant(
            g.account_id,
            variant_id,
            data.get("unit_price"),
            data.get("effective_at"),
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@pricing_bp.post("/models/<int:model_id>/price")
@require_auth
def reprice_model(model_id: int):
    """Apply one price to every variant of a product model."""
    data = request.get_json(silent=True) or {}

    try:
        result = pricing_service.reprice_model(
            g.account_id,
            model_id,
            data.get("unit_price"),
            data.get("effective_at"),
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@pricing_bp.get("/variants/<int:variant_id>/price-history")
@require_auth
def price_history(variant_id: int):
    try:
        entries = pricing_service.list_price_history(g.account_id, variant_id)
        return jsonify({"items": [entry.to_dict() for entry in entries]})
    except Exception as e:
        return error_response(e)
