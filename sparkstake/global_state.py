"""Persisted scan state of every subscribed cell search and the tasks scanning them."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
from pathlib import Path
from typing import Union

from .ckb_types import RpcSearchKey
from .cell_process import SCAN_INTERVAL, CellProcess, RpcSubmit
from .scan_state import State

logger = logging.getLogger(__name__)

STATE_FILE = "scan_state"
TMP_DIR = "tmp"
DUMP_INTERVAL = 60.0


def load_from_dir(path: Union[str, Path]) -> State:
    """Read the saved state from a directory; an unreadable file gives an empty state."""
    db_path = Path(path) / STATE_FILE
    try:
        text = db_path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Failed to open state db, file: %s, error: %r", db_path, exc)
        return State()
    try:
        return State.from_json(text)
    except (ValueError, KeyError, TypeError):
        return State()


def move_file(src: Union[str, Path], dst: Union[str, Path]) -> None:
    """Move src over dst, copying and deleting when a rename is not possible."""
    try:
        os.replace(src, dst)
    except OSError:
        shutil.copyfile(src, dst)
        os.remove(src)


class GlobalState:
    """Owns the scan state saved under a directory and the tasks that advance it."""

    def __init__(self, path: Union[str, Path], scan_interval: float = SCAN_INTERVAL) -> None:
        self.path = Path(path)
        self.scan_interval = scan_interval
        self.state = load_from_dir(self.path)
        self.cell_handles: dict[RpcSearchKey, asyncio.Task] = {}

    def __enter__(self) -> GlobalState:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _sweep(self) -> None:
        finished = [key for key, task in self.cell_handles.items() if task.done()]
        for key in finished:
            del self.cell_handles[key]
            self.state.cell_states.pop(key, None)

    async def run(self, interval: float = DUMP_INTERVAL) -> None:
        """Drop finished searches and save the state, then repeat every interval."""
        while True:
            self._sweep()
            self.dump_to_dir(self.path)
            await asyncio.sleep(interval)

    def spawn_cells(self, client) -> dict[RpcSearchKey, asyncio.Task]:
        """Start a scanning task for every saved search key."""
        for key, tip in self.state.cell_states.items():
            process = CellProcess(key, tip, client, RpcSubmit(), self.scan_interval)
            self.cell_handles[key] = asyncio.create_task(process.run())
        return self.cell_handles

    def dump_to_dir(self, path: Union[str, Path]) -> None:
        """Write the state to path/scan_state through a temporary file."""
        path = Path(path)
        tmp_dir = path / TMP_DIR
        tmp_dir.mkdir(parents=True, exist_ok=True)
        tmp_file = tmp_dir / STATE_FILE
        with open(tmp_file, "w", encoding="utf-8") as handle:
            handle.write(json.dumps(self.state.to_json()))
            handle.flush()
            os.fsync(handle.fileno())
        move_file(tmp_file, path / STATE_FILE)

    def close(self) -> None:
        """Stop every scanning task and save the state."""
        for task in self.cell_handles.values():
            task.cancel()
        self.dump_to_dir(self.path)