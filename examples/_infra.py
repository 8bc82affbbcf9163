"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopcore.db import AddressRow, CouponRow, ProductRow


# Catalog
async def seed_catalog(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        async with session.begin():
            session.add_all([
                ProductRow(id=1, name="Ceramic mug", price=Decimal("25.00"), stock=10),
                ProductRow(id=2, name="Cotton tee", price=Decimal("100.00"), stock=3),
                AddressRow(
                    id=1, user_id=1, name="Asha Rao", phone="+919800000001",
                    line1="12 MG Road", line2=None, city="Bengaluru", state="KA",
                    postal_code="560001", country="IN",
                ),
                CouponRow(code="SAVE10", type="percent", value=Decimal("10")),
            ])


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())
