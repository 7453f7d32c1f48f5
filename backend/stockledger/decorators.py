# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import account_service


def require_auth(f):
    """
    Require a bearer token and establish the account context.

    Sets the following Flask g attributes:
    - g.account_id: The calling account's id (passed explicitly to every service call)
    - g.account_context: The full AccountContext object

    Returns 401 if:
    - No Authorization header
    - Unknown token
    - Account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        context = account_service.resolve_token(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.account_id = context.account_id
        g.account_context = context

        return f(*args, **kwargs)

    return decorated_function
