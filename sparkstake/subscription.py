"""Subscribing cell searches on a CKB node and keeping them scanned."""

from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path
from typing import Optional, Union

from .cell_process import SCAN_INTERVAL, CellProcess, RpcSubmit
from .ckb_client import CkbRpcClient
from .ckb_types import RpcSearchKey
from .global_state import GlobalState
from .scan_state import ScanTip


def _as_int(value) -> int:
    if isinstance(value, str):
        return int(value, 16)
    return int(value)


class CkbSubscriptionClient:
    """Registers and removes cell searches, each scanned by its own task."""

    def __init__(
        self,
        client,
        global_state: GlobalState,
        run_task: Optional[asyncio.Task] = None,
        owns_client: bool = False,
    ) -> None:
        self.client = client
        self.global_state = global_state
        self._run_task = run_task
        self._owns_client = owns_client

    @classmethod
    async def start(cls, ckb_uri: str, path: Union[str, Path]) -> CkbSubscriptionClient:
        """Connect to the node, resume the saved searches and start saving state."""
        client = CkbRpcClient(ckb_uri)
        global_state = GlobalState(path)
        global_state.spawn_cells(client)
        run_task = asyncio.create_task(global_state.run())
        return cls(client, global_state, run_task, owns_client=True)

    async def __aenter__(self) -> CkbSubscriptionClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def register(self, search_key: RpcSearchKey, start) -> bool:
        """Start scanning search_key from block start; False if known or start is not behind the tip."""
        cell_states = self.global_state.state.cell_states
        if search_key in cell_states:
            return False
        start_tip = ScanTip(start)
        indexer_tip = await self.client.get_indexer_tip()
        if _as_int(indexer_tip.block_number) <= start_tip.load():
            return False
        cell_states[search_key] = start_tip
        process = CellProcess(
            search_key, start_tip, self.client, RpcSubmit(), self.global_state.scan_interval
        )
        self.global_state.cell_handles[search_key] = asyncio.create_task(process.run())
        return True

    async def delete(self, search_key: RpcSearchKey) -> bool:
        """Stop scanning search_key; False if it was not registered."""
        if self.global_state.state.cell_states.pop(search_key, None) is None:
            return False
        handle = self.global_state.cell_handles.pop(search_key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    async def close(self) -> None:
        """Stop the state task and every scan, save the state and release the client."""
        if self._run_task is not None:
            self._run_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._run_task
            self._run_task = None
        self.global_state.close()
        if self._owns_client:
            await self.client.close()