"""Adapter that answers API queries from the relational and tree storages."""

from __future__ import annotations

from typing import Any

from .relation_db import TransactionRecord


class DefaultAPIAdapter:
    """Serves API queries from a transaction store.

    The tree storage is held for the queries that will need it; the current
    queries are all answered by the relational store.
    """

    def __init__(self, relation_storage: Any, smt_storage: Any) -> None:
        self.relation_storage = relation_storage
        self.smt_storage = smt_storage

    async def get_records_by_address(
        self, addr, offset: int, limit: int
    ) -> list[TransactionRecord]:
        return await self.relation_storage.get_records_by_address(addr, offset, limit)

    async def get_operation_history(
        self, addr, operation: int, offset: int, limit: int
    ) -> list[TransactionRecord]:
        return await self.relation_storage.get_operation_history(
            addr, operation, offset, limit
        )

    async def get_stake_amount_by_epoch(
        self, operation: int, offset: int, limit: int
    ) -> list[TransactionRecord]:
        return await self.relation_storage.get_stake_amount_by_epoch(
            operation, offset, limit
        )

    async def get_top_stake_address(self, operation: int) -> list[TransactionRecord]:
        return await self.relation_storage.get_top_stake_address(operation)

    async def get_address_state(self, addr) -> list[TransactionRecord]:
        return await self.relation_storage.get_address_state(addr)

    async def get_latest_stake_transactions(
        self, offset: int, limit: int
    ) -> list[TransactionRecord]:
        return await self.relation_storage.get_latest_stake_transactions(offset, limit)