# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Authentication API routes: self-registration, login and logout.

Tokens returned by /login go in the Authorization header as
"Bearer <token>" for every protected route.
"""

from flask import Blueprint, current_app, request

from ..decorators import bearer_token
from ..services import auth_service, session_service
from ..validation import ConflictError, ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """Create a customer account. Does not log in."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400

    try:
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
        )
        return {"message": "User registered successfully", "user": user.to_dict()}, 201

    except ValidationError as e:
        return {"error": str(e), "errors": e.errors}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return {"error": "Internal server error"}, 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Returns user info and the plaintext token (shown once).
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return {"error": "email and password required"}, 400
        email = data.get("email")
        password = data.get("password")

        if not email or not password:
            return {"error": "email and password required"}, 400

        user = auth_service.authenticate(email, password)
        if not user:
            return {"error": "Invalid credentials"}, 401

        _session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return {
            "message": "Login successful",
            "token": token,
            "user": user.to_dict(),
        }, 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return {"error": "Internal server error"}, 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the presented token."""
    try:
        token = bearer_token()
        if token is None:
            return {"error": "Authorization header required"}, 401

        if not session_service.revoke_session(token, reason="User logout"):
            return {"error": "Invalid or expired token"}, 401

        return {"message": "Logout successful"}, 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return {"error": "Internal server error"}, 500
