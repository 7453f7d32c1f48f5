# Overview: Flask API routes for locations and counterparties.

# backend/stockledger/routes/directory.py
from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..extensions import db
from ..models import Counterparty, Location
from ..services import directory_service
from ..validation import ModelValidationPolicy, coerce_bool, validate_payload
from .errors import error_response


LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "counterparty_id", "is_active"},
    required_on_create={"name", "type"},
)

COUNTERPARTY_POLICY = ModelValidationPolicy(
    writable_fields={"type", "name", "phone", "social_link", "address", "note"},
    required_on_create={"type", "name"},
)

directory_bp = Blueprint("directory", __name__, url_prefix="/api")


@directory_bp.get("/locations")
@require_auth
def list_locations():
    try:
        include_inactive = coerce_bool(request.args.get("include_inactive", "false"), "include_inactive")
        locations = directory_service.list_locations(g.account_id, include_inactive=include_inactive)
        return jsonify({"items": [loc.to_dict() for loc in locations]})
    except Exception as e:
        return error_response(e)


@directory_bp.post("/locations")
@require_auth
def create_location():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=False)
        location = directory_service.create_location(g.account_id, patch)
        db.session.commit()
        return jsonify(location.to_dict()), 201
    except Exception as e:
        return error_response(e)


@directory_bp.get("/counterparties")
@require_auth
def list_counterparties():
    try:
        counterparties = directory_service.list_counterparties(
            g.account_id,
            counterparty_type=request.args.get("type") or None,
        )
        return jsonify({"items": [c.to_dict() for c in counterparties]})
    except Exception as e:
        return error_response(e)


@directory_bp.post("/counterparties")
@require_auth
def create_counterparty():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Counterparty, payload=payload, policy=COUNTERPARTY_POLICY, partial=False)
        counterparty = directory_service.create_counterparty(g.account_id, patch)
        db.session.commit()
        return jsonify(counterparty.to_dict()), 201
    except Exception as e:
        return error_response(e)
