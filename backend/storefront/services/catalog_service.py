# Overview: Read-only catalog queries: categories, product listing and detail.

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import false, or_

from ..extensions import db
from ..models import Category, Product
from ..money import format_money
from ..time_utils import to_utc_z
from ..validation import NotFoundError, fits_db_int
from .pagination import paginate


def format_image_url(image_url: str | None) -> str | None:
    """
    Resolve a stored image reference to an absolute URL.

    - http(s) URLs are returned untouched
    - "/public/images/x.svg" is prefixed with ASSET_BASE_URL
    - a bare file name is assumed to live under /public/images/
    """
    if not image_url:
        return None
    if image_url.startswith(("http://", "https://")):
        return image_url

    base = current_app.config.get("ASSET_BASE_URL", "").rstrip("/")
    if image_url.startswith("/"):
        return f"{base}{image_url}"
    return f"{base}/public/images/{image_url}"


def _product_card(p: Product, *, with_category: bool = True) -> dict:
    data = {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "price": format_money(p.price),
        "image_url": format_image_url(p.image_url),
    }
    if with_category:
        data["category"] = p.category.to_dict() if p.category else None
    return data


def _newest_first(query):
    return query.order_by(Product.created_at.desc(), Product.id.desc())


def list_categories() -> list[dict]:
    categories = db.session.query(Category).order_by(Category.name.asc()).all()
    return [c.to_dict() for c in categories]


def list_category_products(category_id: int, page: int | None = None, limit: int | None = None) -> dict:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")

    query = _newest_first(db.session.query(Product).filter(Product.category_id == category.id))
    products, pagination = paginate(query, page, limit)

    return {
        "category": category.to_dict(),
        "products": [_product_card(p, with_category=False) for p in products],
        "pagination": pagination,
    }


def list_products(
    *,
    page: int | None = None,
    limit: int | None = None,
    category_id: int | None = None,
    search: str | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
) -> dict:
    """
    Paginated product listing, newest first.

    Filters combine with AND; search is a case-insensitive substring match
    over name OR description.
    """
    query = db.session.query(Product)

    if category_id is not None:
        if fits_db_int(category_id):
            query = query.filter(Product.category_id == category_id)
        else:
            query = query.filter(false())

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))

    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)

    products, pagination = paginate(_newest_first(query), page, limit)

    return {
        "products": [_product_card(p) for p in products],
        "pagination": pagination,
    }


def get_product(product_id: int) -> dict:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": format_money(product.price),
        "stock": product.stock,
        "image_url": format_image_url(product.image_url),
        "createdAt": to_utc_z(product.created_at),
        "category": product.category.to_dict() if product.category else None,
    }
