# tests/conftest.py
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from workshop import models  # noqa: F401
from workshop.auth import create_access_token
from workshop.database import Base, get_db
from workshop.domain.jobs.router import get_notifier
from workshop.domain.jobs.service import JobLifecycleService
from workshop.main import app
from workshop.models import Business, Customer, User

T0 = datetime(2024, 3, 4, 9, 0, 0)


class FakeClock:
    """Deterministic clock; tests move it forward explicitly"""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeNotifier:
    """Records every call; methods named in fail_on raise instead"""

    def __init__(self):
        self.calls = []
        self.fail_on = set()

    async def _record(self, name, **kwargs):
        self.calls.append((name, kwargs))
        if name in self.fail_on:
            raise RuntimeError(f"{name} unavailable")

    async def notify_job_assignment(self, **kwargs):
        await self._record("notify_job_assignment", **kwargs)

    async def notify_job_reassignment(self, **kwargs):
        await self._record("notify_job_reassignment", **kwargs)

    async def send_ready_for_pickup_email(self, **kwargs):
        await self._record("send_ready_for_pickup_email", **kwargs)

    async def send_job_booked_email(self, **kwargs):
        await self._record("send_job_booked_email", **kwargs)

    def names(self):
        return [name for name, _ in self.calls]


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def seed(db):
    """Two businesses so tenant isolation can be checked"""
    shop = Business(name="Green Blade Repairs", email="desk@greenblade.test")
    other_shop = Business(name="Other Shop")
    db.add_all([shop, other_shop])
    db.flush()

    admin = User(business_id=shop.id, username="admin", full_name="Alex Admin", role="admin")
    mechanic = User(business_id=shop.id, username="mech1", full_name="Morgan Mechanic", role="mechanic")
    mechanic2 = User(business_id=shop.id, username="mech2", full_name="Sam Spanner", role="mechanic")
    outsider = User(business_id=other_shop.id, username="outsider", full_name="Olly Outsider", role="admin")
    customer = Customer(business_id=shop.id, name="Jamie Customer", email="Jamie@Example.com")
    customer_no_email = Customer(business_id=shop.id, name="No Email")
    other_customer = Customer(business_id=other_shop.id, name="Elsewhere", email="else@example.com")
    db.add_all([admin, mechanic, mechanic2, outsider, customer, customer_no_email, other_customer])
    db.commit()

    return {
        "business": shop,
        "other_business": other_shop,
        "admin": admin,
        "mechanic": mechanic,
        "mechanic2": mechanic2,
        "outsider": outsider,
        "customer": customer,
        "customer_no_email": customer_no_email,
        "other_customer": other_customer,
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def service(db, seed, notifier, clock):
    return JobLifecycleService(db, notifier, clock)


@pytest.fixture
def client(db, seed, notifier):
    """TestClient sharing the test session; lifespan is not run so no file database is touched"""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def admin_headers(seed):
    return auth_headers(seed["admin"])


@pytest.fixture
def mechanic_headers(seed):
    return auth_headers(seed["mechanic"])


@pytest.fixture
def outsider_headers(seed):
    return auth_headers(seed["outsider"])
