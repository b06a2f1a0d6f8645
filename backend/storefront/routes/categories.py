# Overview: Flask API routes for categories and per-category product listing.

from flask import Blueprint, current_app, jsonify, request

from ..services.catalog_service import list_categories, list_category_products
from ..validation import NotFoundError

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories_route():
    try:
        return jsonify(list_categories()), 200
    except Exception:
        current_app.logger.exception("Failed to list categories")
        return {"error": "Internal server error"}, 500


@categories_bp.get("/<id:category_id>/products")
def category_products_route(category_id: int):
    page = request.args.get("page", type=int)
    limit = request.args.get("limit", type=int)

    try:
        return list_category_products(category_id, page=page, limit=limit), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to list category products")
        return {"error": "Internal server error"}, 500
