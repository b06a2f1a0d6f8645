# Overview: Idempotent demo catalog seeding used by the CLI and tests.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Category, Product


DEFAULT_CATEGORIES = (
    "Plushies & Toys",
    "Apparel & Accessories",
    "Bags & Pouches",
    "Crochet Supplies",
    "Home & Decor",
)

# (name, description, price, stock, image, category)
DEFAULT_PRODUCTS = (
    ("Crochet Teddy Bear", "Classic teddy bear in premium cotton yarn with an embroidered face.",
     "32.50", 8, "/public/images/crochet-teddy-bear.svg", "Plushies & Toys"),
    ("Crochet Bunny", "Soft cotton bunny with floppy ears and an embroidered face.",
     "32.50", 8, "/public/images/bunny.svg", "Plushies & Toys"),
    ("Mini Dinosaur", "Small acrylic-yarn dinosaur plushie with safety eyes.",
     "10.99", 5, "/public/images/dino.svg", "Plushies & Toys"),
    ("Pixie", "Handmade pixie plushie for children and collectors.",
     "15.00", 10, "/public/images/pixie.svg", "Plushies & Toys"),
    ("Mini Frog Keychain", "Pocket-sized frog on a metal key ring.",
     "12.00", 15, "/public/images/mini-frog.svg", "Apparel & Accessories"),
    ("Granny Square Tote", "Roomy tote bag pieced from granny squares, lined inside.",
     "45.00", 4, "/public/images/tote.svg", "Bags & Pouches"),
    ("Cotton Yarn Bundle", "Six skeins of worsted-weight cotton yarn in pastel shades.",
     "18.75", 30, "/public/images/yarn-bundle.svg", "Crochet Supplies"),
    ("Flower Coaster Set", "Set of four crocheted flower coasters.",
     "14.50", 12, "/public/images/coasters.svg", "Home & Decor"),
)


def seed_catalog() -> dict:
    """
    Create the default categories and products if missing.

    Matching is by name, so re-running never duplicates rows and never
    overwrites prices or stock that were changed after seeding.
    """
    created_categories = 0
    created_products = 0

    categories = {c.name: c for c in db.session.query(Category).all()}
    for name in DEFAULT_CATEGORIES:
        if name not in categories:
            category = Category(name=name)
            db.session.add(category)
            categories[name] = category
            created_categories += 1
    db.session.flush()

    existing = {name for (name,) in db.session.query(Product.name).all()}
    for name, description, price, stock, image_url, category_name in DEFAULT_PRODUCTS:
        if name in existing:
            continue
        db.session.add(Product(
            name=name,
            description=description,
            price=Decimal(price),
            stock=stock,
            image_url=image_url,
            category_id=categories[category_name].id,
        ))
        created_products += 1

    db.session.commit()
    return {"categories": created_categories, "products": created_products}
