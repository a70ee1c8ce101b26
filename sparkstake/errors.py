"""Exception hierarchy for the API, RPC client, storage and transaction builders."""

from __future__ import annotations

import json

INTERNAL_ERROR_CODE = -32603


def _quoted(text: str) -> str:
    """Render a string the way a debug formatter quotes it."""
    return json.dumps(text, ensure_ascii=False)


class ApiError(Exception):
    """Failure inside the JSON-RPC API layer."""

    def to_error_object(self) -> dict:
        """Return the JSON-RPC error object reported to clients."""
        return {"code": INTERNAL_ERROR_CODE, "message": "Api error", "data": str(self)}


class ApiAdapterError(ApiError):
    """The storage adapter behind the API failed."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"adapter error {detail}")


class HttpServerError(ApiError):
    """The HTTP server could not be started."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"http server error {detail}")


class InvalidMethodError(ApiError):
    """A request named a method other than the one expected."""

    def __init__(self, expected: str, found: str) -> None:
        self.expected = expected
        self.found = found
        super().__init__(
            f"invalid method (expected {_quoted(expected)}, found {_quoted(found)})"
        )


class RpcError(Exception):
    """Failure while talking to a CKB node."""


class RpcConnectionAborted(RpcError):
    """The request could not be sent or the connection was dropped."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"connection aborted error {detail}")


class RpcInvalidData(RpcError):
    """The node answered with something that is not a valid result."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"jsonrpc output failure {detail}")


class StorageError(Exception):
    """Failure in the relational or Merkle-tree storage."""


class StoreCreationError(StorageError):
    """The tree store could not be created on disk."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"store creation error {detail}")


class SqlCursorError(StorageError):
    """A relational query failed."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Sql cursor error {detail}")


class CkbTxError(Exception):
    """A CKB transaction could not be built."""


class FirstStakeError(CkbTxError):
    def __init__(self) -> None:
        super().__init__("Missing information for the first stake")


class InaugurationEpochError(CkbTxError):
    def __init__(self, expected: int, found: int) -> None:
        self.expected = expected
        self.found = found
        super().__init__(
            f"Invalid inaugration epoch, expected: {expected}, found: {found}"
        )


class ExceedWalletAmountError(CkbTxError):
    def __init__(self, wallet_amount: int, amount: int) -> None:
        self.wallet_amount = wallet_amount
        self.amount = amount
        super().__init__(
            "The stake/delegate amount is too large, "
            f"wallet amount: {wallet_amount}, stake/delegate amount: {amount}"
        )


class ExceedTotalAmountError(CkbTxError):
    def __init__(self, total_amount: int, new_amount: int) -> None:
        self.total_amount = total_amount
        self.new_amount = new_amount
        super().__init__(
            "The stake/delegate amount is too large, "
            f"total elect amount: {total_amount}, stake/delegate amount: {new_amount}"
        )


class IncreaseError(CkbTxError):
    def __init__(self, is_increase: bool) -> None:
        self.is_increase = is_increase
        super().__init__(f"Invalid is_increase: {str(bool(is_increase)).lower()}")


class InsufficientCapacityError(CkbTxError):
    def __init__(self, inputs_capacity: int, outputs_capacity: int) -> None:
        self.inputs_capacity = inputs_capacity
        self.outputs_capacity = outputs_capacity
        super().__init__(f"Lack of capacity: {inputs_capacity} < {outputs_capacity}")


class ExceedMaxSupplyError(CkbTxError):
    def __init__(self, max_supply: int, total_mint: int) -> None:
        self.max_supply = max_supply
        self.total_mint = total_mint
        super().__init__(
            "The minted amount is too large, "
            f"minted amount: {total_mint}, max supply: {max_supply}"
        )


class CellNotFoundError(CkbTxError):
    def __init__(self, what: str) -> None:
        self.what = what
        super().__init__(f"Cell not found: {what}")


class DeserializeError(CkbTxError):
    def __init__(self) -> None:
        super().__init__("Deserialize bls pub key error")


class RewardEpochNotFoundError(CkbTxError):
    def __init__(self) -> None:
        super().__init__("User's reward epoch not found")


class EpochTooSmallError(CkbTxError):
    def __init__(self) -> None:
        super().__init__("The minimum value of the current epoch should be 2")


class StakeAmountNotFoundError(CkbTxError):
    def __init__(self, staker: bytes) -> None:
        self.staker = staker
        super().__init__("Stake amount not found in stack SMT")