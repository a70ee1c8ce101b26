"""Scan positions of subscribed cell searches and their JSON form."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

from .ckb_types import RpcSearchKey


def _block_number(value: Any) -> int:
    """Read a block number given as an int or a 0x-prefixed hex quantity."""
    if isinstance(value, bool):
        raise ValueError(f"invalid block number {value!r}")
    if isinstance(value, str):
        if not value.startswith("0x"):
            raise ValueError(f"block number must be 0x-prefixed hex, got {value!r}")
        number = int(value[2:], 16)
    elif isinstance(value, int):
        number = value
    else:
        raise ValueError(f"invalid block number {value!r}")
    if not 0 <= number < 1 << 64:
        raise ValueError(f"block number out of range: {number}")
    return number


class ScanTip:
    """The last block number a cell search has scanned up to."""

    def __init__(self, block_number: Union[int, str] = 0) -> None:
        self._value = _block_number(block_number)

    def __repr__(self) -> str:
        return f"ScanTip({self._value})"

    def load(self) -> int:
        return self._value

    def update(self, current: Union[int, str]) -> None:
        self._value = _block_number(current)

    def copy(self) -> ScanTip:
        """Return an independent tip holding the same block number."""
        return ScanTip(self._value)


@dataclass
class State:
    """Every subscribed search key with its scan tip."""

    cell_states: dict[RpcSearchKey, ScanTip] = field(default_factory=dict)

    def to_json(self) -> dict:
        return {
            "cell_states": [
                [key.to_json(), hex(tip.load())] for key, tip in self.cell_states.items()
            ]
        }

    @classmethod
    def from_json(cls, data) -> State:
        """Build a state from its JSON object or from JSON text."""
        if isinstance(data, (str, bytes, bytearray)):
            data = json.loads(data)
        if not isinstance(data, dict) or "cell_states" not in data:
            raise ValueError("state must be an object with cell_states")
        states: dict[RpcSearchKey, ScanTip] = {}
        for entry in data["cell_states"]:
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise ValueError(f"invalid cell state entry {entry!r}")
            key_json, tip = entry
            states[RpcSearchKey.from_json(key_json)] = ScanTip(tip)
        return cls(states)