"""
Pytest fixtures for storefront backend tests.

Provides test database setup, user / catalog fixtures, and test client.
"""

from decimal import Decimal

import pytest

from storefront import create_app
from storefront.config import Config
from storefront.extensions import db
from storefront.models import Category, Product, User
from storefront.services.auth_service import hash_password
from storefront.services import session_service


TEST_PASSWORD = "Password123!"


class TestConfig(Config):
    __test__ = False

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ASSET_BASE_URL = "http://assets.test"
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100
    BCRYPT_ROUNDS = 4


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_user(db_session, email: str, name: str = "Test User", password: str = TEST_PASSWORD) -> User:
    user = User(name=name, email=email, password_hash=hash_password(password))
    db_session.add(user)
    db_session.commit()
    return user


def make_product(db_session, category: Category, name: str, price: str = "10.00", stock: int = 10,
                 description: str | None = None, image_url: str | None = None) -> Product:
    product = Product(
        name=name,
        description=description or f"{name} description",
        price=Decimal(price),
        stock=stock,
        image_url=image_url,
        category_id=category.id,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def user(db_session):
    """Primary customer."""
    return make_user(db_session, "alice@example.com", name="Alice")


@pytest.fixture(scope='function')
def other_user(db_session):
    """Second customer, for ownership isolation checks."""
    return make_user(db_session, "bob@example.com", name="Bob")


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Plushies & Toys")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def product(db_session, category):
    """Product P: 32.50, stock 8."""
    return make_product(db_session, category, "Crochet Teddy Bear", price="32.50", stock=8,
                        image_url="/public/images/crochet-teddy-bear.svg")


@pytest.fixture(scope='function')
def scarce_product(db_session, category):
    """Product Q: stock 2."""
    return make_product(db_session, category, "Gary Snail", price="12.00", stock=2)


def token_for(user: User) -> str:
    """Issue a session token directly, skipping the login route."""
    _session, token = session_service.create_session(user.id)
    return token


def get_auth_token(client, email: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user through the login route."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


VALID_CHECKOUT = {
    "shippingInfo": {
        "first_name": "Alice",
        "last_name": "Liddell",
        "email": "alice@example.com",
        "phone": "5551234567",
        "address": "12 Rabbit Hole Lane",
        "city": "Oxford",
        "state": "OX",
        "zip_code": "12345",
    },
    "paymentInfo": {
        "card_last_four": "4242",
        "card_type": "visa",
    },
}


def checkout_payload(**overrides) -> dict:
    """Deep-ish copy of VALID_CHECKOUT with per-section overrides."""
    payload = {
        "shippingInfo": dict(VALID_CHECKOUT["shippingInfo"]),
        "paymentInfo": dict(VALID_CHECKOUT["paymentInfo"]),
    }
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(payload.get(key), dict):
            payload[key].update(value)
        else:
            payload[key] = value
    return payload
