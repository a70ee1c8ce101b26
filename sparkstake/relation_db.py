"""Relational history of staking transactions kept in SQLite."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import astuple, dataclass, fields
from typing import Optional, Union

import aiosqlite

from .errors import SqlCursorError
from .smt_types import format_address

logger = logging.getLogger(__name__)

TABLE = '"transaction"'

_COLUMNS = (
    "address",
    "timestamp",
    "operation",
    "event",
    "tx_hash",
    "total_amount",
    "stake_amount",
    "delegate_amount",
    "withdrawable_amount",
    "stake_rate",
    "delegate_rate",
    "epoch",
    "status",
)

_CREATE_TABLE = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    address VARCHAR(42) NOT NULL,
    timestamp BIGINT NOT NULL,
    operation INTEGER NOT NULL,
    event INTEGER NOT NULL,
    tx_hash VARCHAR(66) NOT NULL,
    total_amount INTEGER NOT NULL,
    stake_amount INTEGER NOT NULL,
    delegate_amount INTEGER NOT NULL,
    withdrawable_amount INTEGER NOT NULL,
    stake_rate VARCHAR(10) NOT NULL,
    delegate_rate VARCHAR(10) NOT NULL,
    epoch INTEGER NOT NULL,
    status INTEGER NOT NULL
)
"""


@dataclass(kw_only=True)
class TransactionRecord:
    """One row of the transaction table."""

    id: Optional[int] = None
    address: str
    timestamp: int
    operation: int
    event: int
    tx_hash: str
    total_amount: int
    stake_amount: int
    delegate_amount: int
    withdrawable_amount: int
    stake_rate: str
    delegate_rate: str
    epoch: int
    status: int

    @classmethod
    def _from_row(cls, row) -> TransactionRecord:
        names = [f.name for f in fields(cls)]
        return cls(**dict(zip(names, row)))


def _address_text(addr: Union[str, bytes]) -> str:
    return addr if isinstance(addr, str) else format_address(addr)


def _sqlite_path(database_url: str) -> str:
    if database_url in ("sqlite::memory:", "sqlite://:memory:"):
        return ":memory:"
    for scheme in ("sqlite://", "sqlite:"):
        if database_url.startswith(scheme):
            path = database_url[len(scheme):].split("?", 1)[0]
            if not path:
                break
            return path
    raise ValueError(f"unsupported database url {database_url!r}")


async def migrate_up(conn: aiosqlite.Connection) -> None:
    """Create the transaction table if it is missing."""
    await conn.execute(_CREATE_TABLE)
    await conn.commit()


async def migrate_down(conn: aiosqlite.Connection) -> None:
    """Drop the transaction table."""
    await conn.execute(f"DROP TABLE IF EXISTS {TABLE}")
    await conn.commit()


async def establish_connection(database_url: str) -> aiosqlite.Connection:
    """Open the database named by the URL and bring its schema up to date."""
    path = _sqlite_path(database_url)
    try:
        conn = await aiosqlite.connect(path)
    except sqlite3.Error as exc:
        raise SqlCursorError(str(exc)) from exc
    try:
        await migrate_up(conn)
    except sqlite3.Error as exc:
        await conn.close()
        raise SqlCursorError(str(exc)) from exc
    return conn


class TransactionHistory:
    """Queries over the recorded staking transactions.

    Ranged queries follow cursor semantics on the id column: rows with
    offset < id < offset + limit, in ascending id order.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self.db = db

    @classmethod
    async def open(cls, database_url: str) -> TransactionHistory:
        return cls(await establish_connection(database_url))

    async def close(self) -> None:
        await self.db.close()

    async def __aenter__(self) -> TransactionHistory:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def insert(self, record: TransactionRecord) -> TransactionRecord:
        values = astuple(record)[1:]
        placeholders = ", ".join("?" for _ in _COLUMNS)
        try:
            cursor = await self.db.execute(
                f"INSERT INTO {TABLE} ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                values,
            )
            await self.db.commit()
        except sqlite3.Error as exc:
            raise SqlCursorError(str(exc)) from exc
        stored = TransactionRecord(id=cursor.lastrowid, **dict(zip(_COLUMNS, values)))
        logger.info(
            "Transaction created with address: %s, timestamp: %s, tx_hash: %s",
            stored.address,
            stored.timestamp,
            stored.tx_hash,
        )
        return stored

    async def _select(
        self,
        conditions: list[tuple[str, object]],
        id_range: Optional[tuple[int, int]] = None,
        order_by: str = "id",
    ) -> list[TransactionRecord]:
        clauses = [f"{column} = ?" for column, _ in conditions]
        params: list[object] = [value for _, value in conditions]
        if id_range is not None:
            offset, limit = id_range
            clauses += ["id > ?", "id < ?"]
            params += [offset, offset + limit]
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        query = f"SELECT id, {', '.join(_COLUMNS)} FROM {TABLE}{where} ORDER BY {order_by} ASC"
        try:
            async with self.db.execute(query, params) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise SqlCursorError(str(exc)) from exc
        return [TransactionRecord._from_row(row) for row in rows]

    async def get_records_by_address(
        self, addr, offset: int, limit: int
    ) -> list[TransactionRecord]:
        return await self._select([("address", _address_text(addr))], (offset, limit))

    async def get_operation_history(
        self, addr, operation: int, offset: int, limit: int
    ) -> list[TransactionRecord]:
        return await self._select(
            [("address", _address_text(addr)), ("operation", int(operation))],
            (offset, limit),
        )

    async def get_stake_amount_by_epoch(
        self, operation: int, offset: int, limit: int
    ) -> list[TransactionRecord]:
        return await self._select([("operation", int(operation))], (offset, limit))

    async def get_top_stake_address(self, operation: int) -> list[TransactionRecord]:
        return await self._select([("operation", int(operation))], order_by="total_amount")

    async def get_address_state(self, addr) -> list[TransactionRecord]:
        return await self._select([("address", _address_text(addr))])

    async def get_latest_stake_transactions(
        self, offset: int, limit: int
    ) -> list[TransactionRecord]:
        return await self._select([], (offset, limit))