# Overview: Flask API routes for credential checks.

from flask import Blueprint, request, jsonify

from ..errors import ValidationError
from ..services import get_services
from ..validation import require_mapping


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Verify username/password.

    Returns the user on success. Token issuance is left to the host
    application.
    """
    payload = require_mapping(request.get_json(silent=True) or {})
    username = payload.get("username")
    password = payload.get("password")

    missing = [name for name, value in (("username", username), ("password", password)) if not value]
    if missing:
        raise ValidationError("Usuario y contraseña son requeridos", details={"fields": missing})

    user = get_services().auth.authenticate(username, password)
    if user is None:
        return jsonify({"error": "Credenciales inválidas", "details": {}}), 401

    return jsonify({"user": user.to_dict()}), 200
