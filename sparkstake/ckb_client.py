"""Asynchronous JSON-RPC client for a CKB node and its indexer."""

from __future__ import annotations

import itertools
import json
from enum import Enum
from typing import Any, Optional

import httpx

from .ckb_types import Cell, IndexerTip, Pagination
from .errors import RpcConnectionAborted, RpcInvalidData

_URI_EXAMPLE = '"http://127.0.0.1:8114"'


def _parse_uri(ckb_uri: str) -> httpx.URL:
    try:
        url = httpx.URL(ckb_uri)
    except (httpx.InvalidURL, TypeError) as exc:
        raise ValueError(f"invalid ckb uri {ckb_uri!r}, e.g. {_URI_EXAMPLE}") from exc
    if not url.scheme or not url.host:
        raise ValueError(f"invalid ckb uri {ckb_uri!r}, e.g. {_URI_EXAMPLE}")
    return url


def _json(value: Any) -> Any:
    """Turn a typed value into its wire form, leaving plain JSON values alone."""
    to_json = getattr(value, "to_json", None)
    return to_json() if callable(to_json) else value


def _enum_text(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _quantity(value: Any) -> str:
    """Encode an unsigned integer as a 0x-prefixed hex quantity."""
    if isinstance(value, str):
        return value
    number = int(value)
    if number < 0:
        raise ValueError(f"quantity must not be negative: {number}")
    return hex(number)


def _json_bytes(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return "0x" + bytes(value).hex()


def _hash(value: Any) -> bytes:
    if not isinstance(value, str):
        raise ValueError(f"expected a hex hash, got {value!r}")
    data = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    if len(data) != 32:
        raise ValueError(f"hash must be 32 bytes, got {len(data)}")
    return data


class CkbRpcClient:
    """Calls the node's JSON-RPC methods over HTTP.

    Request ids start at zero and grow by one with every call.
    """

    def __init__(self, ckb_uri: str, client: Optional[httpx.AsyncClient] = None) -> None:
        self.ckb_uri = _parse_uri(ckb_uri)
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient()
        self._ids = itertools.count()

    async def __aenter__(self) -> CkbRpcClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the HTTP client if this object created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, *params: Any) -> Any:
        payload = {
            "id": next(self._ids),
            "jsonrpc": "2.0",
            "method": method,
            "params": list(params),
        }
        try:
            response = await self._client.post(self.ckb_uri, json=payload)
        except httpx.HTTPError as exc:
            raise RpcConnectionAborted(repr(exc)) from exc
        try:
            output = response.json()
        except ValueError as exc:
            raise RpcInvalidData(repr(exc)) from exc
        if not isinstance(output, dict):
            raise RpcInvalidData(f"unexpected response {output!r}")
        if "error" in output:
            raise RpcInvalidData(json.dumps(output["error"]))
        if "result" not in output:
            raise RpcInvalidData(f"response without result {output!r}")
        return output["result"]

    @staticmethod
    def _decode(parse, result: Any) -> Any:
        try:
            return parse(result)
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcInvalidData(f"cannot decode result: {exc!r}") from exc

    async def get_cells(self, search_key, order, limit, after=None) -> Pagination:
        result = await self._call(
            "get_cells",
            _json(search_key),
            _enum_text(order),
            _quantity(limit),
            _json_bytes(after),
        )
        return self._decode(lambda data: Pagination.from_json(data, Cell.from_json), result)

    async def get_live_cell(self, out_point, with_data: bool) -> dict:
        """Return the cell-with-status object as the node sends it."""
        result = await self._call("get_live_cell", _json(out_point), bool(with_data))
        if not isinstance(result, dict):
            raise RpcInvalidData(f"unexpected live cell {result!r}")
        return result

    async def get_indexer_tip(self) -> IndexerTip:
        result = await self._call("get_indexer_tip")
        return self._decode(IndexerTip.from_json, result)

    async def send_transaction(self, tx, outputs_validator=None) -> bytes:
        result = await self._call(
            "send_transaction", _json(tx), _enum_text(outputs_validator)
        )
        return self._decode(_hash, result)