"""
Pytest fixtures for Trendora backend tests.

Provides an in-memory database, a test client, account/product factories and
a mailbox that captures the one-time tokens normally delivered by email.
"""

import pytest

from trendora import create_app
from trendora.extensions import db
from trendora.models import Customer
from trendora.services import auth_service, catalog_service, credentials, notification_service, token_service


DEFAULT_ADDRESS = {
    "street": "12 Allen Avenue",
    "city": "Ikeja",
    "state": "Lagos",
    "zip_code": "100271",
    "country": "Nigeria",
}
PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_LOG_ROUNDS': 4,
        'JWT_SECRET_KEY': 'test-jwt-secret-with-enough-length-for-hs256',
        'RESEND_API_KEY': '',
        'CLOUDINARY_CLOUD_NAME': '',
        'CLOUDINARY_API_KEY': '',
        'CLOUDINARY_API_SECRET': '',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh tables and a fresh app context (own session and g) for each test."""
    ctx = app.app_context()
    ctx.push()

    # Clear all data but keep schema
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()

    yield db.session

    db.session.rollback()
    ctx.pop()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def mailbox(monkeypatch):
    """
    Capture verification and reset emails instead of sending them.

    Each entry: {"type": "verification" | "reset", "email", "token", "kind"}.
    """
    sent = []

    def _verification(account, token, *, kind="user"):
        sent.append({"type": "verification", "email": account.email, "token": token, "kind": kind})
        return True, None

    def _reset(account, token, *, kind="user"):
        sent.append({"type": "reset", "email": account.email, "token": token, "kind": kind})
        return True, None

    monkeypatch.setattr(notification_service, "send_verification_email", _verification)
    monkeypatch.setattr(notification_service, "send_password_reset_email", _reset)
    return sent


def last_token(mailbox, kind: str) -> str:
    return [m for m in mailbox if m["type"] == kind][-1]["token"]


@pytest.fixture(scope='function')
def make_staff(db_session):
    """Factory for verified, active staff accounts."""
    counter = {"n": 0}

    def _make(role="staff", *, status="active", username=None, email=None):
        counter["n"] += 1
        user = auth_service.create_user(
            username=username or f"{role}{counter['n']}",
            email=email or f"{role}{counter['n']}@trendora.test",
            password=PASSWORD,
            role=role,
            status=status,
            email_verified=True,
        )
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory for verified, active customers."""
    counter = {"n": 0}

    def _make(*, status="active", email=None, fullname=None):
        counter["n"] += 1
        customer = Customer(
            fullname=fullname or f"Customer {counter['n']}",
            email=email or f"customer{counter['n']}@trendora.test",
            phone_number=f"+23480000000{counter['n']:02d}",
            shipping_address=dict(DEFAULT_ADDRESS),
            password_hash=credentials.hash_password(PASSWORD),
            status=status,
            email_verified=True,
        )
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for products created through the catalog service."""
    counter = {"n": 0}

    def _make(*, price_cents=1000, stock=10, discount=0, published=True, **extra):
        counter["n"] += 1
        patch = {
            "sku": extra.pop("sku", f"SKU-{counter['n']:03d}"),
            "name": extra.pop("name", f"Product {counter['n']}"),
            "description": extra.pop("description", "A product for tests"),
            "price_cents": price_cents,
            "discount": discount,
            "category": extra.pop("category", "clothing"),
            "stock": stock,
            "published": published,
        }
        patch.update(extra)
        return catalog_service.create_product(patch=patch)

    return _make


@pytest.fixture(scope='function')
def admin(make_staff):
    return make_staff("admin")


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(token_service.issue_token(admin))


@pytest.fixture(scope='function')
def customer(make_customer):
    return make_customer()


@pytest.fixture(scope='function')
def customer_headers(customer):
    return auth_headers(token_service.issue_token(customer))


def headers_for(principal) -> dict:
    return auth_headers(token_service.issue_token(principal))


def get_auth_token(client, path: str, email: str, password: str = PASSWORD) -> str:
    """Helper to log in through the API and return the bearer token."""
    response = client.post(path, json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
