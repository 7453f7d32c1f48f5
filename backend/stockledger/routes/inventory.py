# Overview: Flask API routes for stock reads (on-hand, movements, mark codes).

# backend/stockledger/routes/inventory.py
from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import inventory_service, mark_code_service
from ..validation import coerce_bool, coerce_datetime
from .errors import error_response


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api")


@inventory_bp.get("/inventory/on-hand")
@require_auth
def stock_on_hand():
    """
    Query params:
    - variant_id, location_id: int filters (optional)
    - as_of: ISO-8601, inclusive (optional)
    - include_zero: bool (default false)
    """
    try:
        as_of_raw = request.args.get("as_of")
        as_of = coerce_datetime(as_of_raw, "as_of", default_now=False) if as_of_raw else None
        include_zero = coerce_bool(request.args.get("include_zero", "false"), "include_zero")

        rows = inventory_service.get_stock_on_hand(
            g.account_id,
            variant_id=request.args.get("variant_id", type=int),
            location_id=request.args.get("location_id", type=int),
            as_of=as_of,
            include_zero=include_zero,
        )
        return jsonify({"items": rows})
    except Exception as e:
        return error_response(e)


@inventory_bp.get("/inventory/movements")
@require_auth
def stock_movements():
    try:
        movements = inventory_service.list_stock_movements(
            g.account_id,
            variant_id=request.args.get("variant_id", type=int),
            location_id=request.args.get("location_id", type=int),
            operation_id=request.args.get("operation_id", type=int),
            limit=min(request.args.get("limit", 200, type=int), 1000),
        )
        return jsonify({"items": [m.to_dict() for m in movements]})
    except Exception as e:
        return error_response(e)


@inventory_bp.get("/mark-codes")
@require_auth
def list_mark_codes():
    try:
        records = mark_code_service.list_mark_codes(
            g.account_id,
            status=request.args.get("status") or None,
            variant_id=request.args.get("variant_id", type=int),
            location_id=request.args.get("location_id", type=int),
        )
        return jsonify({"items": [r.to_dict() for r in records]})
    except Exception as e:
        return error_response(e)


@inventory_bp.get("/mark-codes/<path:code>")
@require_auth
def get_mark_code(code: str):
    try:
        return jsonify(mark_code_service.get_mark_code(g.account_id, code).to_dict())
    except Exception as e:
        return error_response(e)
