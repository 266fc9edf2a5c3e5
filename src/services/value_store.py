from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.crud.values import append_value, list_values


@dataclass(frozen=True)
class ValueRecord:
    number: int


class DurableStore(Protocol):
    """Append-only ledger of accepted submissions."""

    async def append(self, number: int) -> ValueRecord: ...

    async def read_all(self) -> list[ValueRecord]: ...


class SqlValueStore:
    """Durable store on the `values` table.

    append() commits on its own: the ledger write is the last submission step
    and nothing else shares its transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, number: int) -> ValueRecord:
        row = await append_value(self._session, number=number)
        await self._session.commit()
        return ValueRecord(number=row.number)

    async def read_all(self) -> list[ValueRecord]:
        rows = await list_values(self._session)
        return [ValueRecord(number=r.number) for r in rows]


class InMemoryValueStore:
    def __init__(self) -> None:
        self.records: list[ValueRecord] = []

    async def append(self, number: int) -> ValueRecord:
        record = ValueRecord(number=number)
        self.records.append(record)
        return record

    async def read_all(self) -> list[ValueRecord]:
        return list(self.records)
