# Overview: Pytest coverage for catalog reads, image URLs and pagination.

from decimal import Decimal

import pytest

from storefront.models import Category
from storefront.services import catalog_service
from storefront.services.pagination import resolve_page_args
from storefront.services.seed_service import DEFAULT_CATEGORIES, DEFAULT_PRODUCTS, seed_catalog
from storefront.validation import MAX_DB_INT, NotFoundError

from conftest import make_product


@pytest.fixture
def catalog(db_session):
    toys = Category(name="Plushies & Toys")
    home = Category(name="Home & Decor")
    db_session.add_all([toys, home])
    db_session.commit()

    products = [
        make_product(db_session, toys, "Crochet Bunny", price="32.50", description="Soft cotton bunny"),
        make_product(db_session, toys, "Mini Dinosaur", price="10.99", description="Tiny green dino"),
        make_product(db_session, home, "Flower Coasters", price="14.50", description="Set of four, bunny pattern"),
    ]
    return toys, home, products


class TestImageUrls:

    @pytest.mark.parametrize("stored,expected", [
        ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
        ("http://cdn.example.com/a.png", "http://cdn.example.com/a.png"),
        ("/public/images/bear.svg", "http://assets.test/public/images/bear.svg"),
        ("bear.svg", "http://assets.test/public/images/bear.svg"),
        (None, None),
        ("", None),
    ])
    def test_format_image_url(self, app, stored, expected):
        assert catalog_service.format_image_url(stored) == expected


class TestListings:

    def test_categories_alphabetical(self, db_session, catalog):
        names = [c["name"] for c in catalog_service.list_categories()]
        assert names == ["Home & Decor", "Plushies & Toys"]

    def test_products_newest_first(self, db_session, catalog):
        _toys, _home, products = catalog
        result = catalog_service.list_products()

        assert [p["id"] for p in result["products"]] == [p.id for p in reversed(products)]
        assert result["products"][0]["category"]["name"] == "Home & Decor"
        assert result["pagination"]["totalItems"] == 3

    def test_search_matches_name_or_description_case_insensitive(self, db_session, catalog):
        result = catalog_service.list_products(search="BUNNY")
        names = {p["name"] for p in result["products"]}
        assert names == {"Crochet Bunny", "Flower Coasters"}

    def test_filters_combine(self, db_session, catalog):
        toys, _home, _products = catalog
        result = catalog_service.list_products(
            category_id=toys.id,
            min_price=Decimal("10.00"),
            max_price=Decimal("20.00"),
        )
        assert [p["name"] for p in result["products"]] == ["Mini Dinosaur"]
        assert result["pagination"]["totalItems"] == 1

    def test_category_products(self, db_session, catalog):
        toys, _home, _products = catalog
        result = catalog_service.list_category_products(toys.id)

        assert result["category"] == {"id": toys.id, "name": "Plushies & Toys"}
        assert len(result["products"]) == 2
        assert "category" not in result["products"][0]

    def test_unknown_category(self, db_session):
        with pytest.raises(NotFoundError, match="Category not found"):
            catalog_service.list_category_products(999)

    def test_product_detail(self, db_session, catalog):
        _toys, _home, products = catalog
        detail = catalog_service.get_product(products[0].id)

        assert detail["name"] == "Crochet Bunny"
        assert detail["price"] == "32.50"
        assert detail["stock"] == 10
        assert detail["createdAt"].endswith("Z")
        assert detail["category"]["name"] == "Plushies & Toys"

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError, match="Product not found"):
            catalog_service.get_product(999)


class TestPagination:

    def test_window_and_metadata(self, db_session, category):
        for i in range(25):
            make_product(db_session, category, f"Item {i:02d}")

        result = catalog_service.list_products(page=3, limit=10)

        assert len(result["products"]) == 5
        assert result["pagination"] == {
            "currentPage": 3,
            "totalPages": 3,
            "totalItems": 25,
            "itemsPerPage": 10,
            "hasNextPage": False,
            "hasPrevPage": True,
        }

    def test_page_past_end_is_empty(self, db_session, catalog):
        result = catalog_service.list_products(page=5, limit=2)
        assert result["products"] == []
        assert result["pagination"]["totalPages"] == 2

    def test_category_beyond_id_range_is_empty(self, db_session, catalog):
        result = catalog_service.list_products(category_id=10**20)
        assert result["products"] == []
        assert result["pagination"]["totalItems"] == 0

    @pytest.mark.parametrize("page,limit,expected", [
        (None, None, (1, 10)),
        (0, 5, (1, 5)),
        (-3, 5, (1, 5)),
        (2, 1000, (2, 100)),
        (1, -4, (1, 1)),
        (10**20, 10, (MAX_DB_INT // 10, 10)),
    ])
    def test_resolve_page_args(self, app, page, limit, expected):
        assert resolve_page_args(page, limit) == expected


class TestSeed:

    def test_seed_is_idempotent(self, db_session):
        first = seed_catalog()
        second = seed_catalog()

        assert first == {"categories": len(DEFAULT_CATEGORIES), "products": len(DEFAULT_PRODUCTS)}
        assert second == {"categories": 0, "products": 0}
        assert catalog_service.list_products(limit=100)["pagination"]["totalItems"] == len(DEFAULT_PRODUCTS)
