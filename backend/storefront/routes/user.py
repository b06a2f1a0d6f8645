# Overview: Flask API routes for the signed-in user's profile.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..services import user_service
from ..validation import AuthenticationError, ConflictError, NotFoundError, ValidationError


user_bp = Blueprint("user", __name__, url_prefix="/api/user")


@user_bp.get("/profile")
@require_auth
def get_profile_route():
    try:
        return user_service.get_profile(g.current_user.id), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to load profile")
        return {"error": "Internal server error"}, 500


@user_bp.put("/profile")
@require_auth
def update_profile_route():
    """
    Body: any of {name, email, profile_img, password, oldPassword}.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    try:
        user = user_service.update_profile(g.current_user.id, payload)
        return {"message": "Profile updated successfully", "user": user.to_dict()}, 200

    except ValidationError as e:
        return {"error": str(e), "errors": e.errors}, 400
    except AuthenticationError as e:
        return {"error": str(e)}, 401
    except ConflictError as e:
        return {"error": str(e)}, 409
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return {"error": "Internal server error"}, 500
