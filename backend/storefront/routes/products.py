# Overview: Flask API routes for the public product catalog; parses input and returns JSON responses.

# backend/storefront/routes/products.py
"""
Public product browsing. No authentication required.

Query params for listing:
- page: int (optional, default 1)
- limit: int (optional, default DEFAULT_PAGE_SIZE, max MAX_PAGE_SIZE)
- category: int (optional) - category id
- search: str (optional) - substring of name or description
- minPrice / maxPrice: decimal (optional)
"""
from flask import Blueprint, current_app, request

from ..money import to_money
from ..services.catalog_service import get_product, list_products
from ..validation import NotFoundError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _price_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return None
    return to_money(raw.strip())


@products_bp.get("")
def list_products_route():
    page = request.args.get("page", type=int)
    limit = request.args.get("limit", type=int)
    category_id = request.args.get("category", type=int)
    search = request.args.get("search")

    try:
        min_price = _price_arg("minPrice")
        max_price = _price_arg("maxPrice")
    except ValueError:
        return {"error": "minPrice and maxPrice must be numbers"}, 400

    try:
        return list_products(
            page=page,
            limit=limit,
            category_id=category_id,
            search=search,
            min_price=min_price,
            max_price=max_price,
        ), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return {"error": "Internal server error"}, 500


@products_bp.get("/<id:product_id>")
def get_product_route(product_id: int):
    try:
        return get_product(product_id), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to load product")
        return {"error": "Internal server error"}, 500
