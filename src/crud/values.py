from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.value import Value


async def append_value(session: AsyncSession, *, number: int) -> Value:
    """Insert a ledger row. Does NOT commit; callers control the transaction."""

    row = Value(number=number)
    session.add(row)
    await session.flush()
    return row


async def list_values(session: AsyncSession) -> list[Value]:
    """All ledger rows in insertion order."""

    r = await session.execute(select(Value).order_by(Value.id.asc()))
    return list(r.scalars().all())
