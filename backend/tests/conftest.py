"""
Pytest fixtures for POS backend tests.

Provides the application, a fresh database per test, two tenants with staff,
catalog rows with opening stock, the default payment methods, and fake
payment gateways installed in place of the HTTP adapters.
"""

from decimal import Decimal
from itertools import count

import pytest

from pos import create_app
from pos.cli import DEFAULT_PAYMENT_METHODS
from pos.errors import GatewayFailure
from pos.extensions import db
from pos.models import PaymentMethod, User, WriteContext
from pos.models.auth import ROLE_CASHIER, ROLE_MANAGER, ROLE_OWNER
from pos.models.payments import ISSUER_IPAYMU, ISSUER_TSM
from pos.services import auth_service, catalog_service, recipe_service, stock_service
from pos.services.gateways import (
    GatewayTransaction,
    canonical_json,
    sign,
    verify_signature,
)
from pos.time_utils import utcnow

PASSWORD = "Password123!"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_ENGINE_OPTIONS': {},
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'JWT_SECRET': 'test-jwt-secret',
    'BCRYPT_ROUNDS': 4,
    'EMAIL_WORKER_ENABLED': False,
    'MAIL_SUPPRESS_SEND': True,
    'POLICY_WATCHER_ENABLED': False,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

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


# =============================================================================
# USERS
# =============================================================================

def make_user(name: str, email: str, role: str = ROLE_OWNER, creator: User | None = None) -> User:
    user = WriteContext.system().add(User(
        name=name,
        email=email,
        password_hash=auth_service.hash_password(PASSWORD),
        role=role,
        creator_id=creator.id if creator else None,
        is_active=True,
    ))
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def owner_a(db_session):
    """Owner A (first tenant)."""
    return make_user("Owner A", "owner_a@acme.test")


@pytest.fixture(scope='function')
def owner_b(db_session):
    """Owner B (second tenant)."""
    return make_user("Owner B", "owner_b@beta.test")


@pytest.fixture(scope='function')
def cashier_a(db_session, owner_a):
    """Cashier created by owner A."""
    return make_user("Cashier A", "cashier_a@acme.test", ROLE_CASHIER, creator=owner_a)


@pytest.fixture(scope='function')
def manager_a(db_session, owner_a):
    """Manager created by owner A."""
    return make_user("Manager A", "manager_a@acme.test", ROLE_MANAGER, creator=owner_a)


@pytest.fixture(scope='function')
def ctx_a(owner_a):
    return WriteContext(actor_id=owner_a.id)


@pytest.fixture(scope='function')
def ctx_b(owner_b):
    return WriteContext(actor_id=owner_b.id)


@pytest.fixture(scope='function')
def auth_headers(app):
    """Build Authorization headers for a user."""
    def _headers(user: User) -> dict:
        return {'Authorization': f'Bearer {auth_service.issue_token(user)}'}
    return _headers


# =============================================================================
# CATALOG AND STOCK
# =============================================================================

@pytest.fixture(scope='function')
def outlet_a(ctx_a, owner_a):
    return catalog_service.create_outlet(ctx_a, owner_a.id, {"name": "Outlet A1", "type": "retail"})


@pytest.fixture(scope='function')
def outlet_b(ctx_b, owner_b):
    return catalog_service.create_outlet(ctx_b, owner_b.id, {"name": "Outlet B1", "type": "retail"})


@pytest.fixture(scope='function')
def cafe_a(ctx_a, owner_a):
    return catalog_service.create_outlet(ctx_a, owner_a.id, {"name": "Cafe A", "type": "fnb"})


@pytest.fixture(scope='function')
def retail_product(ctx_a, owner_a, outlet_a):
    """Retail item priced 10,000 with 5 units on hand at outlet A1."""
    product = catalog_service.create_product(ctx_a, owner_a.id, {
        "name": "Notebook",
        "type": "retail_item",
        "sku": "NB-001",
        "price": 10000,
    })
    stock_service.set_stock(ctx_a, owner_a.id, outlet_a.uuid, product.uuid, 5)
    return product


@pytest.fixture(scope='function')
def product_b(ctx_b, owner_b, outlet_b):
    """Retail item owned by tenant B with stock at outlet B1."""
    product = catalog_service.create_product(ctx_b, owner_b.id, {
        "name": "Product B",
        "type": "retail_item",
        "sku": "PROD-B-001",
        "price": 2000,
    })
    stock_service.set_stock(ctx_b, owner_b.id, outlet_b.uuid, product.uuid, 10)
    return product


@pytest.fixture(scope='function')
def latte_menu(ctx_a, owner_a, cafe_a):
    """
    FnB menu at Cafe A.

    Latte (25,000) = 0.018 beans + 0.2 milk per cup.
    Stock: 1 beans, 10 milk, 20 extra shots.
    Extra shot add-on bound to Latte at 6,000.
    """
    latte = catalog_service.create_product(ctx_a, owner_a.id, {
        "name": "Latte", "type": "fnb_main_product", "price": 25000,
    })
    beans = catalog_service.create_product(ctx_a, owner_a.id, {
        "name": "Espresso Beans", "type": "fnb_component", "price": 0,
    })
    milk = catalog_service.create_product(ctx_a, owner_a.id, {
        "name": "Milk", "type": "fnb_component", "price": 0,
    })
    shot = catalog_service.create_product(ctx_a, owner_a.id, {
        "name": "Extra Shot", "type": "add_on", "price": 5000,
    })

    recipe_service.create_recipe(ctx_a, owner_a.id, main_product_uuid=latte.uuid, component_uuid=beans.uuid, quantity="0.018")
    recipe_service.create_recipe(ctx_a, owner_a.id, main_product_uuid=latte.uuid, component_uuid=milk.uuid, quantity="0.2")

    stock_service.set_stock(ctx_a, owner_a.id, cafe_a.uuid, beans.uuid, 1)
    stock_service.set_stock(ctx_a, owner_a.id, cafe_a.uuid, milk.uuid, 10)
    stock_service.set_stock(ctx_a, owner_a.id, cafe_a.uuid, shot.uuid, 20)

    extra_shot = catalog_service.bind_add_on(ctx_a, owner_a.id, latte.uuid, {
        "add_on_product_uuid": shot.uuid, "price": 6000,
    })
    return {
        "latte": latte,
        "beans": beans,
        "milk": milk,
        "shot": shot,
        "extra_shot": extra_shot,
    }


def stock_of(owner: User, outlet, product) -> Decimal:
    return Decimal(stock_service.get_stock(owner.id, outlet.uuid, product.uuid).quantity)


# =============================================================================
# PAYMENTS
# =============================================================================

@pytest.fixture(scope='function')
def payment_methods(db_session):
    """The four default methods keyed by name (Cash, Bank Transfer, Credit Card, QRIS)."""
    ctx = WriteContext.system()
    methods = {}
    for method_def in DEFAULT_PAYMENT_METHODS:
        methods[method_def["name"]] = ctx.add(PaymentMethod(is_active=True, **method_def))
    db.session.commit()
    return methods


class FakeGateway:
    """In-memory gateway: records requests, hands out sequential references."""

    def __init__(self, issuer: str):
        self.issuer = issuer
        self.requests = []
        self.fail = False
        self._seq = count(1)

    def create_transaction(self, request):
        if self.fail:
            raise GatewayFailure(detail=f"{self.issuer} unreachable")
        self.requests.append(request)
        now = utcnow()
        if self.issuer == ISSUER_TSM:
            reference = request.reference
        else:
            reference = f"TRX-{next(self._seq)}"
        return GatewayTransaction(
            reference_id=reference,
            endpoint=f"fake://{self.issuer}",
            request_payload={"amount": str(request.amount)},
            response_payload={"status": "ok"},
            request_at=now,
            response_at=now,
            extra={"reference": reference},
        )

    def verify_callback(self, raw_body, headers, va):
        return verify_signature(va, raw_body, headers.get("Signature"))


@pytest.fixture(scope='function')
def gateways(app):
    """Replace the HTTP adapters with FakeGateway instances for one test."""
    original = app.extensions["gateway_adapters"]
    fakes = {ISSUER_IPAYMU: FakeGateway(ISSUER_IPAYMU), ISSUER_TSM: FakeGateway(ISSUER_TSM)}
    app.extensions["gateway_adapters"] = fakes
    yield fakes
    app.extensions["gateway_adapters"] = original


def signed_callback(va: str, payload: dict) -> tuple[bytes, dict]:
    """(body, headers) as a gateway would deliver them."""
    body = canonical_json(payload)
    return body.encode("utf-8"), {"Signature": sign(va, body), "VA": va, "Content-Type": "application/json"}


CUSTOMER = {"name": "Budi", "email": "budi@example.test", "phone": "081234567890"}
