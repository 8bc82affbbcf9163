"""Pytest fixtures for shopcore tests."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from shopcore.config import GatewaySettings
from shopcore.db import (
    AddressRow,
    CartLineRow,
    CartRow,
    CouponRow,
    ProductRow,
    create_database,
)
from shopcore.payments import InMemoryGateway
from shopcore.services import build_services

USER = 1
OTHER_USER = 2
ADDRESS = 1
OTHER_ADDRESS = 2

MUG, TEE, POSTER = 1, 2, 3

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FixedClock:
    """Test clock; ``advance`` moves it forward."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def seed_rows():
    return [
        ProductRow(id=MUG, name="Mug", price=Decimal("25.00"), stock=10),
        ProductRow(id=TEE, name="Tee", price=Decimal("100.00"), stock=5),
        ProductRow(id=POSTER, name="Poster", price=Decimal("10.00"), stock=1),
        AddressRow(
            id=ADDRESS, user_id=USER, name="Asha Rao", phone="+919800000001",
            line1="12 MG Road", line2=None, city="Bengaluru", state="KA",
            postal_code="560001", country="IN",
        ),
        AddressRow(
            id=OTHER_ADDRESS, user_id=OTHER_USER, name="Ravi Iyer", phone="+919800000002",
            line1="4 Park Street", line2="Flat 3", city="Kolkata", state="WB",
            postal_code="700016", country="IN",
        ),
        CouponRow(code="SAVE10", type="percent", value=Decimal("10")),
        CouponRow(code="FLAT30", type="fixed", value=Decimal("30"), max_discount=Decimal("20")),
        CouponRow(code="BIG500", type="percent", value=Decimal("10"), min_subtotal=Decimal("500")),
        CouponRow(
            code="EXPIRED", type="percent", value=Decimal("10"),
            starts_at=NOW - timedelta(days=30), ends_at=NOW - timedelta(days=1),
        ),
        CouponRow(code="RETIRED", type="percent", value=Decimal("10"), active=False),
        CouponRow(code="HUGE", type="fixed", value=Decimal("1000")),
    ]


async def seed(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            session.add_all(seed_rows())


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}"


@pytest.fixture
async def session_factory(db_url):
    factory, engine = await create_database(db_url)
    await seed(factory)
    yield factory
    await engine.dispose()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def gateway_settings():
    return GatewaySettings(
        key_id="rzp_test_key",
        key_secret="key-secret",
        webhook_secret="hook-secret",
        currency="INR",
    )


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def services(session_factory, gateway, gateway_settings, clock):
    return build_services(session_factory, gateway, gateway_settings, clock)


class Probe:
    """Reads the database behind the services' backs."""

    def __init__(self, session_factory) -> None:
        self._session = session_factory

    async def stock(self, product_id: int) -> int:
        async with self._session() as session:
            row = await session.get(ProductRow, product_id)
            return row.stock

    async def count(self, row_cls) -> int:
        async with self._session() as session:
            return await session.scalar(select(func.count()).select_from(row_cls))

    async def cart_lines(self, user_id: int) -> int:
        async with self._session() as session:
            stmt = (
                select(func.count())
                .select_from(CartLineRow)
                .join(CartRow, CartRow.id == CartLineRow.cart_id)
                .where(CartRow.user_id == user_id)
            )
            return await session.scalar(stmt)

    async def cart_coupon(self, user_id: int) -> int | None:
        async with self._session() as session:
            return await session.scalar(select(CartRow.coupon_id).where(CartRow.user_id == user_id))


@pytest.fixture
def probe(session_factory):
    return Probe(session_factory)
