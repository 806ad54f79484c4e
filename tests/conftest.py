"""Pytest fixtures for storefront tests."""

import os

# must be set before storefront modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"
os.environ["ADMIN_EMAIL"] = ""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from storefront.api.deps import get_lock_service, get_notifier, get_payment_processor, get_rate_limiter
from storefront.data.database import Base, get_db, make_engine
from storefront.data.models import CouponModel, OrderItemModel, OrderModel, ProductModel, UserModel
from storefront.services.payment_client import ChargeResult

CHECKOUT_FORM = {
    "full_name": "Jane Doe",
    "email": "jane@example.com",
    "phone_number": "+15555550123",
    "address": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "zip": "62701",
    "country": "US",
    "payment_method": "Credit Card",
    "payment_method_nonce": "fake-valid-nonce",
}


class InMemoryLockService:
    def __init__(self):
        self.locks: dict[str, str] = {}
        self.history: list[tuple[str, str, str]] = []

    def acquire(self, key, owner, ttl):
        self.history.append(("acquire", key, owner))
        if key in self.locks:
            return False
        self.locks[key] = owner
        return True

    def release(self, key, owner):
        self.history.append(("release", key, owner))
        if self.locks.get(key) == owner:
            del self.locks[key]
            return True
        return False


class FakePaymentProcessor:
    def __init__(self):
        self.calls = []
        self.success = True
        self.message = ""
        self.error = None
        self.on_charge = None
        self.refunds = []
        self.refund_error = None

    def charge(self, amount, method, credentials):
        self.calls.append((amount, method, credentials))
        if self.on_charge is not None:
            self.on_charge()
        if self.error is not None:
            raise self.error
        if not self.success:
            return ChargeResult(success=False, message=self.message)
        return ChargeResult(success=True, transaction_id=f"TX{len(self.calls)}")

    def refund(self, transaction_id, amount):
        self.refunds.append((transaction_id, amount))
        if self.refund_error is not None:
            raise self.refund_error
        return ChargeResult(success=True, transaction_id=f"RF{len(self.refunds)}")


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, to, subject, body):
        self.sent.append((to, subject, body))


class FakeRedis:
    """Just enough of redis.Redis for the lock service and the rate limiter."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def set(self, name, value, nx=False, ex=None):
        if nx and name in self.data:
            return None
        self.data[name] = value
        if ex is not None:
            self.ttls[name] = ex
        return True

    def eval(self, script, numkeys, key, owner):
        if self.data.get(key) == owner:
            del self.data[key]
            return 1
        return 0

    def incr(self, name):
        self.data[name] = int(self.data.get(name, 0)) + 1
        return self.data[name]

    def expire(self, name, seconds):
        self.ttls[name] = seconds
        return True


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    import storefront.data.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def lock_service():
    return InMemoryLockService()


@pytest.fixture
def payment_processor():
    return FakePaymentProcessor()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, lock_service, payment_processor, notifier):
    from storefront.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_payment_processor] = lambda: payment_processor
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_rate_limiter] = lambda: None

    yield TestClient(app)

    app.dependency_overrides.clear()


def make_user(db, user_id=1, role="user", email=None):
    user = UserModel(id=user_id, name=f"User {user_id}", email=email or f"user{user_id}@example.com", role=role)
    db.add(user)
    db.commit()
    return user


def make_product(db, name="Denim Jacket", price="100", stock=10, discount="0", deleted=False):
    product = ProductModel(
        name=name,
        description=f"{name} description",
        image_url=f"https://img.example.com/{name.lower().replace(' ', '-')}.png",
        category="Apparel",
        price=Decimal(price),
        stock=stock,
        discount=Decimal(discount),
        deleted=deleted,
    )
    db.add(product)
    db.commit()
    return product


def make_coupon(db, code="SAVE10", discount="10", days=30, is_active=True, usage_count=0, max_usage=1):
    coupon = CouponModel(
        code=code,
        discount=Decimal(discount),
        expiry_date=datetime.now(timezone.utc) + timedelta(days=days),
        is_active=is_active,
        usage_count=usage_count,
        max_usage=max_usage,
    )
    db.add(coupon)
    db.commit()
    return coupon


def make_order(db, user, status="Processing"):
    now = datetime.now(timezone.utc)
    order = OrderModel(
        user_id=user.id,
        full_name="Jane Doe",
        email=user.email,
        address="1 Main St",
        city="Springfield",
        state="IL",
        zip="62701",
        country="US",
        payment_method="Credit Card",
        payment_status="Paid",
        order_status=status,
        transaction_id="TX1",
        subtotal=Decimal("100.00"),
        discount=Decimal("0"),
        total_amount=Decimal("100.00"),
        created_at=now,
        updated_at=now,
        items=[
            OrderItemModel(
                product_id=1,
                name="Denim Jacket",
                unit_price=Decimal("100.00"),
                discount=Decimal("0"),
                quantity=1,
                image_url="",
            )
        ],
    )
    db.add(order)
    db.commit()
    return order


def auth(user_or_id):
    user_id = getattr(user_or_id, "id", user_or_id)
    return {"X-User-Id": str(user_id)}
