# Overview: Service-layer operations for the wishlist.

"""
Wishlist Service

Same find-or-create parent pattern as the cart, but membership is boolean:
adding a product that is already present is a conflict, never a merge.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Wishlist, WishlistItem
from ..money import format_money
from ..validation import ConflictError, NotFoundError
from .catalog_service import format_image_url
from .concurrency import atomic


def _require_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def find_wishlist(user_id: int) -> Wishlist | None:
    return db.session.query(Wishlist).filter_by(user_id=user_id).first()


def get_or_create_wishlist(user_id: int) -> Wishlist:
    wishlist = find_wishlist(user_id)
    if wishlist is not None:
        return wishlist

    try:
        with db.session.begin_nested():
            wishlist = Wishlist(user_id=user_id)
            db.session.add(wishlist)
    except IntegrityError:
        wishlist = db.session.query(Wishlist).filter_by(user_id=user_id).one()
    return wishlist


def add_item(user_id: int, product_id: int) -> dict:
    """
    Raises:
        NotFoundError: product does not exist
        ConflictError: product already in the wishlist
    """
    with atomic():
        product = _require_product(product_id)
        wishlist = get_or_create_wishlist(user_id)

        existing = (
            db.session.query(WishlistItem)
            .filter_by(wishlist_id=wishlist.id, product_id=product.id)
            .first()
        )
        if existing:
            raise ConflictError("Product already exists in wishlist")

        # The unique constraint still backs this up for two concurrent adds
        try:
            with db.session.begin_nested():
                db.session.add(WishlistItem(wishlist_id=wishlist.id, product_id=product.id))
        except IntegrityError:
            raise ConflictError("Product already exists in wishlist")

        wishlist_id = wishlist.id

    return {"wishlist_id": wishlist_id, "product_id": product_id}


def get_wishlist(user_id: int) -> dict:
    wishlist = find_wishlist(user_id)
    if wishlist is None:
        return {"wishlist_id": None, "items": [], "total_items": 0}

    products = (
        db.session.query(Product)
        .join(WishlistItem, WishlistItem.product_id == Product.id)
        .filter(WishlistItem.wishlist_id == wishlist.id)
        .order_by(WishlistItem.id.asc())
        .all()
    )

    items = [
        {
            "product_id": p.id,
            "name": p.name,
            "description": p.description,
            "price": format_money(p.price),
            "image_url": format_image_url(p.image_url),
            "stock": p.stock,
        }
        for p in products
    ]

    return {"wishlist_id": wishlist.id, "items": items, "total_items": len(items)}


def remove_item(user_id: int, product_id: int) -> dict:
    with atomic():
        _require_product(product_id)

        wishlist = find_wishlist(user_id)
        if wishlist is None:
            raise NotFoundError("Wishlist not found")

        deleted = (
            db.session.query(WishlistItem)
            .filter_by(wishlist_id=wishlist.id, product_id=product_id)
            .delete(synchronize_session=False)
        )
        if deleted == 0:
            raise NotFoundError("Product not found in wishlist")

        db.session.expire(wishlist, ["items"])

    return {"product_id": product_id}
