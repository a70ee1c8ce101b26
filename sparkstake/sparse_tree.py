"""Sparse Merkle trees kept in a small column-family key/value store."""

from __future__ import annotations

import hashlib
import sqlite3
import threading
from contextlib import contextmanager
from operator import itemgetter
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, TypeVar, Union

from .errors import StoreCreationError
from .smt_types import (
    ADDRESS_LEN,
    DELEGATOR_TABLE,
    HASH_LEN,
    PROPOSAL_TABLE,
    REWARD_TABLE,
    STAKER_TABLE,
    LeafValue,
    column_families,
)

T = TypeVar("T")

DEFAULT_TABLES = (STAKER_TABLE, DELEGATOR_TABLE, REWARD_TABLE, PROPOSAL_TABLE)
TREE_HEIGHT = 256
ZERO_HASH = bytes(HASH_LEN)

_PERSONAL = b"ckb-default-hash"
_STORE_FILE = "smt.sqlite3"


def _hash(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=HASH_LEN, person=_PERSONAL).digest()


def _key(key) -> bytes:
    value = bytes(key)
    if len(value) != HASH_LEN:
        raise ValueError(f"tree key must be {HASH_LEN} bytes, got {len(value)}")
    return value


def _leaf_hash(key: bytes, value: LeafValue) -> bytes:
    return _hash(key + value.data)


def _merge(left: bytes, right: bytes) -> bytes:
    if left == ZERO_HASH and right == ZERO_HASH:
        return ZERO_HASH
    return _hash(left + right)


def _bit(key: bytes, depth: int) -> int:
    return (key[depth >> 3] >> (7 - (depth & 7))) & 1


def _split(items: list, depth: int, key: Callable = lambda item: item) -> tuple[list, list]:
    """Split sorted items sharing a path into the left and right child at depth."""
    for index, item in enumerate(items):
        if _bit(key(item), depth):
            return items[:index], items[index:]
    return items, []


def _subtree_root(leaves: list[tuple[bytes, bytes]], depth: int) -> bytes:
    if not leaves:
        return ZERO_HASH
    if depth == TREE_HEIGHT:
        return leaves[0][1]
    left, right = _split(leaves, depth, itemgetter(0))
    return _merge(_subtree_root(left, depth + 1), _subtree_root(right, depth + 1))


def _emit_sibling(out: bytearray, node: bytes) -> None:
    if node == ZERO_HASH:
        out.append(0)
    else:
        out.append(1)
        out.extend(node)


def _prove(
    leaves: list[tuple[bytes, bytes]], targets: list[bytes], depth: int, out: bytearray
) -> None:
    if depth == TREE_HEIGHT:
        return
    left_leaves, right_leaves = _split(leaves, depth, itemgetter(0))
    left_targets, right_targets = _split(targets, depth)
    if left_targets:
        _prove(left_leaves, left_targets, depth + 1, out)
    if right_targets:
        _prove(right_leaves, right_targets, depth + 1, out)
    if not right_targets:
        _emit_sibling(out, _subtree_root(right_leaves, depth + 1))
    if not left_targets:
        _emit_sibling(out, _subtree_root(left_leaves, depth + 1))


class _Transaction:
    """Write handle handed out by SmtStore.transaction()."""

    def __init__(self, store: SmtStore) -> None:
        self._store = store

    def get(self, cf: str, key: bytes) -> Optional[bytes]:
        return self._store._get(cf, key)

    def put(self, cf: str, key: bytes, value: bytes) -> None:
        self._store._put(cf, key, value)

    def delete(self, cf: str, key: bytes) -> None:
        self._store._delete(cf, key)


class SmtStore:
    """A persistent store of byte keys and values grouped in column families."""

    def __init__(self, path: Union[str, Path], tables: Iterable[str] = DEFAULT_TABLES) -> None:
        self.path = Path(path)
        try:
            if not self.path.is_dir():
                self.path.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.path / _STORE_FILE), isolation_level=None, check_same_thread=False
            )
            conn.execute(
                "CREATE TABLE IF NOT EXISTS kv ("
                "cf TEXT NOT NULL, key BLOB NOT NULL, value BLOB NOT NULL, "
                "PRIMARY KEY (cf, key))"
            )
        except (OSError, sqlite3.Error) as exc:
            raise StoreCreationError(str(exc)) from exc
        self._conn = conn
        self._lock = threading.RLock()
        self._depth = 0
        self._families = frozenset(
            name for table in tables for name in column_families(table)
        )

    def __enter__(self) -> SmtStore:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _check(self, cf: str) -> None:
        if cf not in self._families:
            raise KeyError(f"unknown column family {cf!r}")

    def _get(self, cf: str, key: bytes) -> Optional[bytes]:
        self._check(cf)
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM kv WHERE cf = ? AND key = ?", (cf, bytes(key))
            ).fetchone()
        return None if row is None else bytes(row[0])

    def _put(self, cf: str, key: bytes, value: bytes) -> None:
        self._check(cf)
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO kv (cf, key, value) VALUES (?, ?, ?)",
                (cf, bytes(key), bytes(value)),
            )

    def _delete(self, cf: str, key: bytes) -> None:
        self._check(cf)
        with self._lock:
            self._conn.execute("DELETE FROM kv WHERE cf = ? AND key = ?", (cf, bytes(key)))

    @contextmanager
    def transaction(self) -> Iterator[_Transaction]:
        """Group writes so they are committed together or not at all."""
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield _Transaction(self)
                finally:
                    self._depth -= 1
                return
            self._conn.execute("BEGIN")
            self._depth = 1
            try:
                yield _Transaction(self)
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")
            finally:
                self._depth = 0

    def iter_prefix(self, cf: str, prefix: bytes) -> Iterator[tuple[bytes, bytes]]:
        """Yield the (key, value) pairs of a column family whose key starts with prefix."""
        self._check(cf)
        prefix = bytes(prefix)
        with self._lock:
            if prefix:
                rows = self._conn.execute(
                    "SELECT key, value FROM kv WHERE cf = ? AND substr(key, 1, ?) = ? "
                    "ORDER BY key",
                    (cf, len(prefix), prefix),
                ).fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT key, value FROM kv WHERE cf = ? ORDER BY key", (cf,)
                ).fetchall()
        return iter([(bytes(key), bytes(value)) for key, value in rows])

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class SparseMerkleTree:
    """A 256-level sparse Merkle tree living under one prefix of a table."""

    def __init__(self, store: SmtStore, table: str, prefix: bytes = b"") -> None:
        self._store = store
        self.table = table
        self.prefix = bytes(prefix)
        self._branch_cf, self._leaf_cf = column_families(table)
        store._check(self._branch_cf)
        store._check(self._leaf_cf)

    def _leaves(self) -> list[tuple[bytes, bytes]]:
        size = len(self.prefix) + HASH_LEN
        return sorted(
            (key[len(self.prefix):], _leaf_hash(key[len(self.prefix):], LeafValue(value)))
            for key, value in self._store.iter_prefix(self._leaf_cf, self.prefix)
            if len(key) == size
        )

    def get(self, key) -> LeafValue:
        """Return the value at key, or the zero value when absent."""
        raw = self._store._get(self._leaf_cf, self.prefix + _key(key))
        return LeafValue.zero() if raw is None else LeafValue(raw)

    def update_all(self, pairs: Iterable[tuple[bytes, LeafValue]]) -> bytes:
        """Set every key to its value (zero deletes) and return the new root."""
        with self._store.transaction() as txn:
            for key, value in pairs:
                leaf_key = self.prefix + _key(key)
                leaf = value if isinstance(value, LeafValue) else LeafValue(value)
                if leaf.is_zero():
                    txn.delete(self._leaf_cf, leaf_key)
                else:
                    txn.put(self._leaf_cf, leaf_key, leaf.data)
            new_root = _subtree_root(self._leaves(), 0)
            txn.put(self._branch_cf, self.prefix, new_root)
        return new_root

    def root(self) -> bytes:
        raw = self._store._get(self._branch_cf, self.prefix)
        return ZERO_HASH if raw is None else raw

    def merkle_proof(self, keys: Iterable[bytes]) -> bytes:
        """Compile the sibling hashes needed to prove the given keys."""
        targets = sorted({_key(key) for key in keys})
        if not targets:
            return b""
        out = bytearray()
        _prove(self._leaves(), targets, 0, out)
        return bytes(out)


def open_tree(store: SmtStore, table: str, prefix: bytes = b"") -> SparseMerkleTree:
    return SparseMerkleTree(store, table, prefix)


def sub_leaves(
    store: SmtStore, table: str, prefix: bytes, decode: Callable[[LeafValue], T]
) -> dict[bytes, T]:
    """Map each address leaf under prefix to its decoded value."""
    prefix = bytes(prefix)
    _, leaf_cf = column_families(table)
    size = len(prefix) + HASH_LEN
    return {
        key[len(prefix):len(prefix) + ADDRESS_LEN]: decode(LeafValue(value))
        for key, value in store.iter_prefix(leaf_cf, prefix)
        if len(key) == size
    }