"""JSON-RPC modules for the staking query API and an HTTP server for them."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from aiohttp import web

from .api_types import (
    AddressAmount,
    ChainState,
    HistoryEvent,
    HistoryTransactions,
    OperationStatus,
    OperationType,
    RewardFrom,
    RewardHistory,
    RewardState,
    StakeAmount,
    StakeHistory,
    StakeRate,
    StakeState,
    StakeTransaction,
    parse_enum,
    to_json,
)
from .errors import ApiAdapterError, ApiError, HttpServerError
from .smt_types import ADDRESS_LEN, format_address

logger = logging.getLogger(__name__)

PARSE_ERROR_CODE = -32700
INVALID_REQUEST_CODE = -32600
METHOD_NOT_FOUND_CODE = -32601
INVALID_PARAMS_CODE = -32602
INTERNAL_ERROR_CODE = -32603

Handler = Callable[[Any], Awaitable[Any]]


class JsonRpcError(Exception):
    """An error answered to the client with its own code and message."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_error_object(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


def _wrong_arguments() -> JsonRpcError:
    return JsonRpcError(INVALID_PARAMS_CODE, "wrong number of arguments")


def _address(value) -> bytes:
    if isinstance(value, str):
        if not value.startswith("0x"):
            raise ValueError(f"address must be 0x-prefixed hex, got {value!r}")
        value = bytes.fromhex(value[2:])
    data = bytes(value)
    if len(data) != ADDRESS_LEN:
        raise ValueError(f"address must be {ADDRESS_LEN} bytes, got {len(data)}")
    return data


def _u64(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected an unsigned integer, got {value!r}")
    if not 0 <= value < 1 << 64:
        raise ValueError(f"integer out of range: {value}")
    return value


def _parse_hash(text: str) -> bytes:
    hex_text = text[2:] if text.startswith("0x") else text
    data = bytes.fromhex(hex_text)
    if len(data) != 32:
        raise ValueError(f"invalid transaction hash {text!r}")
    return data


def _offset(page_number: int, page_size: int) -> int:
    if page_number < 1:
        raise JsonRpcError(INVALID_PARAMS_CODE, "page_number must be at least 1")
    return (page_number - 1) * page_size


@dataclass(frozen=True)
class _Param:
    name: str
    parse: Callable[[Any], Any]


def _bind(params, spec: tuple[_Param, ...]) -> list:
    if params is None:
        params = []
    if isinstance(params, list):
        if len(params) != len(spec):
            raise JsonRpcError(
                INVALID_PARAMS_CODE,
                "Invalid params",
                f"expected {len(spec)} params, got {len(params)}",
            )
        raw = params
    elif isinstance(params, dict):
        missing = [p.name for p in spec if p.name not in params]
        if missing:
            raise JsonRpcError(
                INVALID_PARAMS_CODE, "Invalid params", f"missing params: {', '.join(missing)}"
            )
        raw = [params[p.name] for p in spec]
    else:
        raise JsonRpcError(INVALID_PARAMS_CODE, "Invalid params", "params must be a list or object")
    try:
        return [p.parse(value) for p, value in zip(spec, raw)]
    except (TypeError, ValueError) as exc:
        raise JsonRpcError(INVALID_PARAMS_CODE, "Invalid params", str(exc)) from exc


def _handler(method: Callable[..., Awaitable[Any]], *spec: _Param) -> Handler:
    async def handle(params):
        return await method(*_bind(params, spec))

    return handle


class RpcModule:
    """A table of named JSON-RPC methods."""

    def __init__(self) -> None:
        self._methods: dict[str, Handler] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._methods

    @property
    def method_names(self) -> list[str]:
        return sorted(self._methods)

    def register(self, name: str, handler: Handler) -> None:
        if name in self._methods:
            raise ValueError(f"method {name!r} is already registered")
        self._methods[name] = handler

    def merge(self, other: RpcModule) -> None:
        clash = self._methods.keys() & other._methods.keys()
        if clash:
            raise ValueError(f"methods already registered: {', '.join(sorted(clash))}")
        self._methods.update(other._methods)

    async def handle(self, request) -> dict:
        """Answer one JSON-RPC request object with a response object."""
        if not isinstance(request, dict):
            return _error_response(None, {"code": INVALID_REQUEST_CODE, "message": "Invalid request"})
        request_id = request.get("id")
        method = request.get("method")
        if request.get("jsonrpc") != "2.0" or not isinstance(method, str):
            return _error_response(
                request_id, {"code": INVALID_REQUEST_CODE, "message": "Invalid request"}
            )
        handler = self._methods.get(method)
        if handler is None:
            return _error_response(
                request_id, {"code": METHOD_NOT_FOUND_CODE, "message": "Method not found"}
            )
        try:
            result = await handler(request.get("params"))
        except (JsonRpcError, ApiError) as exc:
            return _error_response(request_id, exc.to_error_object())
        except Exception as exc:
            logger.exception("method %s failed", method)
            return _error_response(
                request_id,
                {"code": INTERNAL_ERROR_CODE, "message": "Internal error", "data": str(exc)},
            )
        return {"jsonrpc": "2.0", "id": request_id, "result": to_json(result)}


def _error_response(request_id, error: dict) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


async def _query(call: Awaitable[Any]):
    try:
        return await call
    except Exception as exc:
        raise ApiAdapterError(str(exc)) from exc


class StatusRpcModule:
    """Account and staking history queries."""

    def __init__(self, adapter) -> None:
        self.adapter = adapter

    async def get_stake_rate(self, addr) -> StakeRate:
        addr = _address(addr)
        records = await _query(self.adapter.get_records_by_address(addr, 0, 1))
        if not records:
            raise _wrong_arguments()
        first = records[0]
        return StakeRate(
            address=format_address(addr),
            stake_rate=first.stake_rate,
            delegate_rate=first.delegate_rate,
        )

    async def get_stake_state(self, addr) -> StakeState:
        addr = _address(addr)
        records = await _query(self.adapter.get_address_state(addr))
        stake_amount = amount = delegate_amount = withdrawable_amount = 0
        for model in records:
            if model.operation == OperationType.STAKE:
                stake_amount += model.total_amount
            elif model.operation == OperationType.DELEGATE:
                amount += model.total_amount
            else:
                continue
            delegate_amount += model.delegate_amount
            withdrawable_amount += model.withdrawable_amount
        return StakeState(
            total_amount=amount,
            stake_amount=stake_amount,
            delegate_amount=delegate_amount,
            withdrawable_amount=withdrawable_amount,
        )

    async def get_reward_state(self, addr) -> RewardState:
        addr = _address(addr)
        records = await _query(self.adapter.get_records_by_address(addr, 0, 1))
        lock_amount = unlock_amount = 0
        for model in records:
            if model.operation == OperationType.STAKE:
                lock_amount += model.epoch
            elif model.operation == OperationType.DELEGATE:
                unlock_amount += model.epoch
        return RewardState(lock_amount=lock_amount, unlock_amount=unlock_amount)

    async def get_stake_history(
        self, addr, page_number: int, page_size: int, event, history_type
    ) -> list[StakeHistory]:
        addr = _address(addr)
        event = parse_enum(HistoryEvent, event)
        history_type = parse_enum(OperationType, history_type)
        offset = _offset(page_number, page_size)
        records = await _query(
            self.adapter.get_operation_history(addr, int(history_type), offset, page_size)
        )
        matching = [model for model in records if model.event == event]
        transactions = [
            HistoryTransactions(
                hash=_parse_hash(model.tx_hash),
                status=OperationStatus(model.status),
                timestamp=model.timestamp,
            )
            for model in matching
        ]
        return [
            StakeHistory(
                id=format_address(addr),
                amount=model.total_amount,
                event=event,
                status=OperationStatus(model.status),
                transactions=list(transactions),
            )
            for model in matching
        ]

    async def get_reward_history(
        self, addr, page_number: int, page_size: int
    ) -> RewardHistory:
        addr = _address(addr)
        offset = _offset(page_number, page_size)
        records = await _query(
            self.adapter.get_operation_history(addr, int(OperationType.REWARD), offset, page_size)
        )
        if not records:
            raise _wrong_arguments()
        first = records[0]
        return RewardHistory(
            epoch=first.epoch,
            amount=first.total_amount,
            locked=first.status != 0,
            from_=RewardFrom(
                reward_type=OperationType(first.operation),
                address=addr,
                amount=first.total_amount,
            ),
        )

    async def get_stake_amount_by_epoch(
        self, operation_type, page_number: int, page_size: int
    ) -> list[StakeAmount]:
        operation_type = parse_enum(OperationType, operation_type)
        offset = _offset(page_number, page_size)
        records = await _query(
            self.adapter.get_stake_amount_by_epoch(int(operation_type), offset, page_size)
        )
        return [StakeAmount(epoch=m.epoch, amount=str(m.total_amount)) for m in records]

    async def get_top_stake_address(
        self, page_number: int, page_size: int
    ) -> list[AddressAmount]:
        total = page_number * page_size
        records = await _query(self.adapter.get_top_stake_address(int(OperationType.STAKE)))
        return [
            AddressAmount(address=m.address, amount=str(m.total_amount))
            for m in records[:total]
        ]

    async def get_latest_stake_transactions(
        self, page_number: int, page_size: int
    ) -> list[StakeTransaction]:
        offset = _offset(page_number, page_size)
        records = await _query(self.adapter.get_latest_stake_transactions(offset, page_size))
        return [
            StakeTransaction(
                timestamp=m.timestamp,
                hash=_parse_hash(m.tx_hash),
                amount=m.total_amount,
                status=OperationStatus(m.status),
            )
            for m in records
        ]

    def into_rpc(self) -> RpcModule:
        addr = _Param("addr", _address)
        page_number = _Param("page_number", _u64)
        page_size = _Param("page_size", _u64)
        operation_type = _Param("operation_type", lambda v: parse_enum(OperationType, v))
        module = RpcModule()
        module.register("getStakeRate", _handler(self.get_stake_rate, addr))
        module.register("getStakeState", _handler(self.get_stake_state, addr))
        module.register("getRewardState", _handler(self.get_reward_state, addr))
        module.register(
            "getStakeHistory",
            _handler(
                self.get_stake_history,
                addr,
                page_number,
                page_size,
                _Param("enent", lambda v: parse_enum(HistoryEvent, v)),
                operation_type,
            ),
        )
        module.register(
            "getRewardHistory",
            _handler(self.get_reward_history, addr, page_number, page_size),
        )
        module.register(
            "getStakeAmountByEpoch",
            _handler(self.get_stake_amount_by_epoch, operation_type, page_number, page_size),
        )
        module.register(
            "getTopStakeAddress",
            _handler(self.get_top_stake_address, page_number, page_size),
        )
        module.register(
            "getLatestStakeTransactions",
            _handler(self.get_latest_stake_transactions, page_number, page_size),
        )
        return module


class AxonStatusRpc:
    """Chain status queries."""

    def __init__(self, adapter) -> None:
        self.adapter = adapter

    async def get_chain_state(self) -> ChainState:
        return ChainState()

    def into_rpc(self) -> RpcModule:
        module = RpcModule()
        module.register("getChainState", _handler(self.get_chain_state))
        return module


@dataclass
class _RunningServer:
    runner: web.AppRunner
    host: str
    port: int

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/"

    async def close(self) -> None:
        await self.runner.cleanup()

    async def __aenter__(self) -> _RunningServer:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


async def start_server(module: RpcModule, host: str = "127.0.0.1", port: int = 0) -> _RunningServer:
    """Serve the module over HTTP POST at the root path."""

    async def endpoint(request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except ValueError:
            return web.json_response(
                _error_response(None, {"code": PARSE_ERROR_CODE, "message": "Parse error"})
            )
        if isinstance(body, list):
            if not body:
                return web.json_response(
                    _error_response(None, {"code": INVALID_REQUEST_CODE, "message": "Invalid request"})
                )
            return web.json_response([await module.handle(item) for item in body])
        return web.json_response(await module.handle(body))

    app = web.Application()
    app.router.add_post("/", endpoint)
    runner = web.AppRunner(app)
    await runner.setup()
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        site = web.SockSite(runner, sock)
        await site.start()
    except OSError as exc:
        sock.close()
        await runner.cleanup()
        raise HttpServerError(str(exc)) from exc
    bound_host, bound_port = sock.getsockname()[:2]
    return _RunningServer(runner, bound_host, bound_port)


async def mock_server(adapter) -> _RunningServer:
    """Start the query and chain status methods on a free local port."""
    module = StatusRpcModule(adapter).into_rpc()
    module.merge(AxonStatusRpc(adapter).into_rpc())
    server = await start_server(module, "127.0.0.1", 0)
    logger.info("addr: %s:%s", server.host, server.port)
    return server