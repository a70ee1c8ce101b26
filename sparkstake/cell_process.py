"""Watching a cell search on the chain and handing new cells to a submitter."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from .scan_state import ScanTip

logger = logging.getLogger(__name__)

CONFIRMATIONS = 24
SCAN_INTERVAL = 8.0
_ASC = "asc"


class SubmitProcess(Protocol):
    def is_closed(self) -> bool: ...

    async def notify_axon(self, cell: Any) -> bool: ...


class RpcSubmit:
    """Submitter that reports each cell it receives and never closes."""

    def is_closed(self) -> bool:
        return False

    async def notify_axon(self, cell: Any) -> bool:
        logger.info("cell: %r", cell)
        return True


def _as_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16)
    return int(value)


class CellProcess:
    """Scans one search key forward, keeping a safety margin behind the tip."""

    def __init__(
        self,
        key,
        scan_tip: ScanTip,
        rpc,
        process: SubmitProcess,
        interval: float = SCAN_INTERVAL,
    ) -> None:
        self.key = key
        self.scan_tip = scan_tip
        self.rpc = rpc
        self.process = process
        self.interval = interval
        self._stop = False

    def stop(self) -> None:
        self._stop = True

    async def run(self) -> None:
        """Scan until stopped or the submitter closes; RPC errors propagate."""
        while not self._stop and not self.process.is_closed():
            await self.scan()

    async def scan(self) -> bool:
        """Advance one step; wait an interval and return False when there is nothing new."""
        indexer_tip = await self.rpc.get_indexer_tip()
        old_tip = self.scan_tip.load()
        new_tip = max(_as_int(indexer_tip.block_number) - CONFIRMATIONS, 0)
        if new_tip > old_tip:
            search_key = self.key.into_key([old_tip, new_tip])
            page = await self.rpc.get_cells(search_key, _ASC, 1, None)
            if page.objects:
                await self.process.notify_axon(page.objects[0])
            self.scan_tip.update(new_tip)
            return True
        await asyncio.sleep(self.interval)
        return False