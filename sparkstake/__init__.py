"""Staking bookkeeping: sparse Merkle trees, a SQLite transaction history, a JSON-RPC query API and a CKB indexer watcher."""

__version__ = "0.1.0"