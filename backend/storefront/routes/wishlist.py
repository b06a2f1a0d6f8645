# Overview: Flask API routes for the wishlist; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..services import wishlist_service
from ..validation import ConflictError, NotFoundError, ValidationError, parse_positive_int

wishlist_bp = Blueprint("wishlist", __name__, url_prefix="/api/wishlist")


@wishlist_bp.post("")
@require_auth
def add_to_wishlist_route():
    """Body: {product_id: int}. Adding a product twice is a 409."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}

    try:
        if payload.get("product_id") is None:
            raise ValidationError(
                "product_id is required",
                errors=[{"field": "product_id", "message": "product_id is required"}],
            )
        product_id = parse_positive_int(payload["product_id"], "product_id")
    except ValidationError as e:
        return {"error": str(e), "errors": e.errors}, 400

    try:
        result = wishlist_service.add_item(g.current_user.id, product_id)
        return {
            "message": "Product added to wishlist successfully",
            "wishlist_id": result["wishlist_id"],
        }, 201

    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to add product to wishlist")
        return {"error": "Internal server error"}, 500


@wishlist_bp.get("")
@require_auth
def get_wishlist_route():
    try:
        return wishlist_service.get_wishlist(g.current_user.id), 200
    except Exception:
        current_app.logger.exception("Failed to load wishlist")
        return {"error": "Internal server error"}, 500


@wishlist_bp.delete("/remove/<id:product_id>")
@require_auth
def remove_wishlist_item_route(product_id: int):
    try:
        wishlist_service.remove_item(g.current_user.id, product_id)
        return {"message": "Product removed from wishlist", "product_id": product_id}, 200
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to remove wishlist item")
        return {"error": "Internal server error"}, 500
