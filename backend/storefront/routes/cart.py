# Overview: Flask API routes for the shopping cart; parses input and returns JSON responses.

# backend/storefront/routes/cart.py
"""
Cart routes. All require authentication and act on the caller's own cart.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..services import cart_service
from ..validation import InvalidStateError, NotFoundError, ValidationError, parse_positive_int

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _required_int(payload: dict, field: str) -> int:
    if payload.get(field) is None:
        raise ValidationError(f"{field} is required", errors=[{"field": field, "message": f"{field} is required"}])
    return parse_positive_int(payload[field], field)


def _invalid_state(e: InvalidStateError):
    return {"error": str(e), "details": e.details}, 400


@cart_bp.post("")
@require_auth
def add_to_cart_route():
    """
    Body: {product_id: int, quantity: int >= 1}
    Re-adding a product merges into the existing line.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}

    try:
        product_id = _required_int(payload, "product_id")
        quantity = _required_int(payload, "quantity")
    except ValidationError as e:
        return {"error": str(e), "errors": e.errors}, 400

    try:
        result = cart_service.add_item(g.current_user.id, product_id, quantity)
        return {
            "message": "Product added to cart successfully",
            "cart_id": result["cart_id"],
        }, 201

    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidStateError as e:
        return _invalid_state(e)
    except Exception:
        current_app.logger.exception("Failed to add product to cart")
        return {"error": "Internal server error"}, 500


@cart_bp.get("")
@require_auth
def get_cart_route():
    try:
        return cart_service.get_cart(g.current_user.id), 200
    except Exception:
        current_app.logger.exception("Failed to load cart")
        return {"error": "Internal server error"}, 500


@cart_bp.put("/update/<id:product_id>")
@require_auth
def update_cart_item_route(product_id: int):
    """Body: {quantity: int >= 1}. Overwrites the line quantity."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}

    try:
        quantity = _required_int(payload, "quantity")
    except ValidationError as e:
        return {"error": str(e), "errors": e.errors}, 400

    try:
        result = cart_service.update_item(g.current_user.id, product_id, quantity)
        return {
            "message": "Cart item updated successfully",
            "product_id": result["product_id"],
            "quantity": result["quantity"],
        }, 200

    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidStateError as e:
        return _invalid_state(e)
    except Exception:
        current_app.logger.exception("Failed to update cart item")
        return {"error": "Internal server error"}, 500


@cart_bp.delete("/remove/<id:product_id>")
@require_auth
def remove_cart_item_route(product_id: int):
    try:
        result = cart_service.remove_item(g.current_user.id, product_id)
        return {"message": "Product removed from cart", "product_id": result["product_id"]}, 200
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return {"error": "Internal server error"}, 500


@cart_bp.delete("")
@require_auth
def clear_cart_route():
    try:
        result = cart_service.clear_cart(g.current_user.id)
        return {
            "message": "Cart cleared successfully",
            "items_removed": result["items_removed"],
            "cart_id": result["cart_id"],
        }, 200
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to clear cart")
        return {"error": "Internal server error"}, 500
