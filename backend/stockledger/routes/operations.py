# Overview: Flask API routes for ledger operations; parses input and returns JSON responses.

# backend/stockledger/routes/operations.py
"""
Operation routes.

All routes require a bearer token; the account is taken from g.account_id
(set by @require_auth) and passed explicitly to every service call.
"""
from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..services import operation_service
from .errors import error_response


operations_bp = Blueprint("operations", __name__, url_prefix="/api/operations")


@operations_bp.route("", methods=["POST"])
@require_auth
def create_operation():
    """
    Submit a new operation.

    Request body:
    {
        "type": str,
        "occurred_at": ISO-8601 (optional, defaults to now),
        "from_location_id": int (optional),
        "to_location_id": int (optional),
        "counterparty_id": int (optional),
        "promo_code_id": int (optional),
        "lines": [{"variant_id": int, "qty": int, "mark_codes": [str], ...}]
    }

    Returns:
        201: Operation created
        400: Invalid request
        404: Unknown variant/location/counterparty/promo code
    """
    payload = request.get_json(silent=True)

    try:
        operation_id = operation_service.submit_operation(g.account_id, payload)
        operation = operation_service.get_operation(g.account_id, operation_id)
        return jsonify(operation.to_dict()), 201
    except Exception as e:
        return error_response(e)


@operations_bp.route("", methods=["GET"])
@require_auth
def list_operations():
    """
    Query params:
    - type: operation type filter (optional)
    - limit: int (default 100, max 500)
    - offset: int (default 0)
    """
    try:
        operations = operation_service.list_operations(
            g.account_id,
            operation_type=request.args.get("type") or None,
            limit=request.args.get("limit", 100, type=int),
            offset=request.args.get("offset", 0, type=int),
        )
        return jsonify({"items": [op.to_dict(include_lines=False) for op in operations]})
    except Exception as e:
        return error_response(e)


@operations_bp.route("/<int:operation_id>", methods=["GET"])
@require_auth
def get_operation(operation_id: int):
    try:
        operation = operation_service.get_operation(g.account_id, operation_id)
        return jsonify(operation.to_dict())
    except Exception as e:
        return error_response(e)


@operations_bp.route("/<int:operation_id>", methods=["PUT"])
@require_auth
def replace_operation(operation_id: int):
    """
    Fully replace an operation. Same body as POST.

    Returns:
        200: Operation replaced
        400: Invalid request
        404: Operation not found
        409: Marked line edited without marking_not_handled
    """
    payload = request.get_json(silent=True)

    try:
        operation_service.replace_operation(g.account_id, operation_id, payload)
        operation = operation_service.get_operation(g.account_id, operation_id)
        return jsonify(operation.to_dict())
    except Exception as e:
        return error_response(e)


@operations_bp.route("/<int:operation_id>", methods=["DELETE"])
@require_auth
def delete_operation(operation_id: int):
    try:
        operation_service.delete_operation(g.account_id, operation_id)
        return jsonify({"ok": True, "id": operation_id})
    except Exception as e:
        return error_response(e)
