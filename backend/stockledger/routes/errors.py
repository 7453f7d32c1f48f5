# Overview: Maps ledger exceptions to JSON error responses.

from flask import current_app

from ..extensions import db
from ..validation import AccessDeniedError, ConflictError, NotFoundError, ValidationError


def error_response(exc: Exception):
    """
    Translate a service exception into ({"error": ...}, status).

    Rolls back the session before building the response.
    """
    db.session.rollback()

    if isinstance(exc, ValidationError):
        return {"error": str(exc)}, 400
    if isinstance(exc, AccessDeniedError):
        return {"error": str(exc)}, 403
    if isinstance(exc, NotFoundError):
        return {"error": str(exc)}, 404
    if isinstance(exc, ConflictError):
        return {"error": str(exc)}, 409
    if isinstance(exc, ValueError):
        return {"error": str(exc)}, 400

    current_app.logger.exception("Unexpected ledger failure")
    return {"error": "Unexpected error"}, 500
