"""
Pytest fixtures for test database, client, gateway and notifications.

Each test gets its own SQLite database file, so tests are isolated and can
exercise real transactions (including concurrent ones).
"""

import asyncio
import itertools
import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///./test_default.db")
os.environ.setdefault("SENDGRID_API_KEY", "")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.exceptions import GatewayError, GatewayErrorKind
from app.database import Base, commit_and_notify, get_db
from app.gateways.base import (
    CreateOrderResult,
    CustomerDetails,
    GatewayType,
    PaymentGateway,
    VerifyOrderResult,
)
from app.main import app
from app.models.customer import Customer
from app.models.vehicle import Vehicle
from app.services.gateway_service import get_payment_gateway
from app.services.notification_service import notification_service
from app.services.sequence_service import sequence_service


class FakeGateway(PaymentGateway):
    """In-memory gateway: issues order ids and answers status queries from attributes."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.created: list[dict[str, Any]] = []
        self.verified: list[str] = []
        self.create_error: GatewayError | None = None
        self.verify_error: GatewayError | None = None
        self.status_code: str | None = "2"
        self.paid_amount: int | None = None
        # Seconds each status query takes, to overlap concurrent verifications
        self.latency: float = 0

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.JCC

    async def create_order(
        self,
        amount: int,
        currency: str,
        reference: str,
        description: str,
        return_url: str,
        fail_url: str,
        customer: CustomerDetails | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> CreateOrderResult:
        self.created.append({"amount": amount, "currency": currency, "reference": reference})
        if self.create_error:
            return CreateOrderResult.failed(self.create_error)
        order_id = f"ord-{next(self._ids)}"
        return CreateOrderResult(
            success=True,
            external_order_id=order_id,
            redirect_url=f"https://gateway.test/payment?mdOrder={order_id}",
            raw_response={"orderId": order_id},
        )

    async def verify_order(self, external_order_id: str) -> VerifyOrderResult:
        self.verified.append(external_order_id)
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.verify_error:
            return VerifyOrderResult.failed(self.verify_error)
        return VerifyOrderResult(
            success=True,
            raw_status_code=self.status_code,
            amount=self.paid_amount,
            currency="EUR",
            raw_response={"errorCode": "0", "orderStatus": self.status_code},
        )

    def fail_verification(self, kind: GatewayErrorKind = GatewayErrorKind.TRANSPORT) -> None:
        self.verify_error = GatewayError(kind, f"simulated {kind.value} failure")


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Engine on a fresh SQLite file with real BEGIN/SAVEPOINT semantics.

    pysqlite's own transaction handling is switched off and BEGIN is emitted
    explicitly, so savepoints and row-level write ordering behave.
    """
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        connect_args={"timeout": 30},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        # WAL: an open read transaction in one session must not block commits in another
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(test_engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        await sequence_service.ensure_counters(session)
        await session.commit()
    return maker


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture(autouse=True)
def sent_notifications(monkeypatch) -> list[dict[str, Any]]:
    """Record notifications instead of calling the email provider."""
    sent: list[dict[str, Any]] = []

    async def fake_send(to_address: str, template_kind: str, data: dict[str, Any]) -> bool:
        sent.append({"to": to_address, "kind": template_kind, "data": data})
        return True

    monkeypatch.setattr(notification_service, "send", fake_send)
    return sent


@pytest_asyncio.fixture(scope="function")
async def client(session_maker, gateway) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the test database and the fake gateway."""

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await commit_and_notify(session)
            except Exception:
                await session.rollback()
                notification_service.discard(session)
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def vehicle(db_session: AsyncSession) -> Vehicle:
    vehicle = Vehicle(name="Toyota Yaris", code="YARIS", visible=True)
    db_session.add(vehicle)
    await db_session.commit()
    await db_session.refresh(vehicle)
    return vehicle


@pytest_asyncio.fixture
async def hidden_vehicle(db_session: AsyncSession) -> Vehicle:
    vehicle = Vehicle(name="Retired Fiat Panda", code="PANDA", visible=False)
    db_session.add(vehicle)
    await db_session.commit()
    await db_session.refresh(vehicle)
    return vehicle


@pytest_asyncio.fixture
async def customer(db_session: AsyncSession) -> Customer:
    """Guest customer (no password)."""
    customer = Customer(
        email="anne@example.com",
        first_name="Anne",
        last_name="Georgiou",
        phone="+35799111111",
        verified=False,
    )
    db_session.add(customer)
    await db_session.commit()
    await db_session.refresh(customer)
    return customer


@pytest.fixture
def rental_period() -> tuple[datetime, datetime]:
    start = (datetime.now(UTC) + timedelta(days=10)).replace(hour=10, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=3)


@pytest.fixture
def booking_payload(vehicle, customer, rental_period):
    """Factory for JSON booking bodies."""
    start, end = rental_period

    def make(payment_type: str = "OnArrival", **overrides) -> dict[str, Any]:
        body = {
            "customer_id": str(customer.id),
            "vehicle_id": str(vehicle.id),
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "total_price": "150.00",
            "payment_type": payment_type,
            "extras": [{"name": "Child seat", "quantity": 1, "price": "5.00"}],
        }
        body.update(overrides)
        return body

    return make


