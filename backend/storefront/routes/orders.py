# Overview: Flask API routes for checkout and order history; parses input and returns JSON responses.

# backend/storefront/routes/orders.py
"""
Order routes.

POST /api/order checks out the caller's cart. The body is validated in full
before the cart or any stock is looked at; every failing field is reported.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..services import order_service
from ..validation import InvalidStateError, NotFoundError, ValidationError, validate_checkout

orders_bp = Blueprint("orders", __name__, url_prefix="/api/order")


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Body:
        shippingInfo: {first_name, last_name, email, phone, address, city,
                       state, zip_code, country?}
        paymentInfo:  {card_last_four, card_type}
        order_note:   str (optional)
    """
    try:
        shipping, payment, note = validate_checkout(request.get_json(silent=True))
    except ValidationError as e:
        return {"error": str(e), "errors": e.errors}, 400

    try:
        receipt = order_service.place_order(g.current_user.id, shipping, payment, note)
        return {"message": "Order created successfully", **receipt}, 201

    except InvalidStateError as e:
        return {"error": str(e), "details": e.details}, 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return {"error": "Internal server error"}, 500


@orders_bp.get("")
@require_auth
def order_history_route():
    page = request.args.get("page", type=int)
    limit = request.args.get("limit", type=int)

    try:
        return order_service.get_order_history(g.current_user.id, page=page, limit=limit), 200
    except Exception:
        current_app.logger.exception("Failed to load order history")
        return {"error": "Internal server error"}, 500


@orders_bp.get("/<id:order_id>")
@require_auth
def order_detail_route(order_id: int):
    try:
        return order_service.get_order(g.current_user.id, order_id), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to load order")
        return {"error": "Internal server error"}, 500
