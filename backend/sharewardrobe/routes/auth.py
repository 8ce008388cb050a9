# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/sharewardrobe/routes/auth.py
"""
Authentication API routes

- Phone + password registration (OTP verification happens elsewhere)
- Login issues a bearer session token
- Logout revokes the presented token
"""

from flask import Blueprint, request, jsonify, g

from ..errors import UnauthorizedError
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth
from ..validation import get_json_body, require_fields


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Request body:
    {
        "phone": "+8801700000000",
        "password": "secret123",
        "name": "Optional",
        "email": "optional@example.com",
        "address": "Optional default delivery address"
    }
    """
    data = get_json_body()
    require_fields(data, "phone", "password")

    user = auth_service.create_user(
        phone=data["phone"],
        password=data["password"],
        name=data.get("name"),
        email=data.get("email"),
        address=data.get("address"),
    )
    return jsonify({"user": user.to_dict()}), 201


@auth_bp.post("/login")
def login_route():
    data = get_json_body()
    require_fields(data, "phone", "password")

    user = auth_service.authenticate(data["phone"], data["password"])
    if not user:
        raise UnauthorizedError("Invalid credentials")

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/nid")
@require_auth
def submit_nid_route():
    """Attach identity document URLs for admin verification."""
    data = get_json_body()
    require_fields(data, "front_url", "back_url")
    user = auth_service.submit_identity_documents(g.current_user.id, data["front_url"], data["back_url"])
    return jsonify({"user": user.to_dict()}), 200
