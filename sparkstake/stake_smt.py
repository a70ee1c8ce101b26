"""Staker, reward and proposal Merkle trees over a shared store."""

from __future__ import annotations

from typing import Iterable, Optional

from .smt_types import (
    PROPOSAL_TABLE,
    REWARD_TABLE,
    STAKER_TABLE,
    Address,
    Amount,
    Epoch,
    LeafValue,
    Proof,
    ProposalCount,
    Root,
    Staker,
    UserAmount,
    Validator,
    address_key,
    epoch_key,
    epoch_prefix,
    top_prefix,
)
from .sparse_tree import SmtStore, SparseMerkleTree, open_tree, sub_leaves


def _group_changes(records: Iterable[UserAmount]) -> dict[bytes, list[tuple[int, bool]]]:
    grouped: dict[bytes, list[tuple[int, bool]]] = {}
    for record in records:
        grouped.setdefault(record.user, []).append((record.amount, record.is_increase))
    return grouped


def _apply_changes(amount: int, changes: Iterable[tuple[int, bool]]) -> int:
    """Add increases and subtract decreases, never going below zero."""
    for value, increase in changes:
        amount = amount + value if increase else max(amount - value, 0)
    return amount


class StakeSmt:
    """Per-epoch staker amounts, with a top tree of epoch roots.

    Sub tree: address key -> amount.  Top tree: epoch key -> sub tree root.
    """

    def __init__(self, store: SmtStore) -> None:
        self._store = store

    def _tree(self, prefix: bytes) -> SparseMerkleTree:
        return open_tree(self._store, STAKER_TABLE, prefix)

    def _insert_full(self, epoch: Epoch, kvs: list[tuple[bytes, LeafValue]]) -> None:
        self._tree(epoch_prefix(epoch)).update_all(kvs)
        root = self.get_sub_root(epoch)
        self._tree(top_prefix()).update_all([(epoch_key(epoch), LeafValue.from_root(root))])

    def new_epoch(self, epoch: Epoch) -> None:
        """Carry the previous epoch's stakers into a new epoch."""
        if epoch == 0:
            return
        kvs = [
            (address_key(staker), LeafValue.from_amount(amount))
            for staker, amount in self.get_sub_leaves(epoch - 1).items()
        ]
        self._insert_full(epoch, kvs)

    def insert(self, epoch: Epoch, stakers: Iterable[UserAmount]) -> None:
        kvs = [
            (
                address_key(user),
                LeafValue.from_amount(
                    _apply_changes(self.get_amount(epoch, user) or 0, changes)
                ),
            )
            for user, changes in _group_changes(stakers).items()
        ]
        self._insert_full(epoch, kvs)

    def remove(self, epoch: Epoch, stakers: Iterable[Staker]) -> None:
        self._insert_full(epoch, [(address_key(staker), LeafValue.zero()) for staker in stakers])

    def get_amount(self, epoch: Epoch, staker: Staker) -> Optional[Amount]:
        leaf = self._tree(epoch_prefix(epoch)).get(address_key(staker))
        return None if leaf.is_zero() else leaf.to_amount()

    def get_sub_leaves(self, epoch: Epoch) -> dict[Staker, Amount]:
        return sub_leaves(self._store, STAKER_TABLE, epoch_prefix(epoch), LeafValue.to_amount)

    def get_sub_root(self, epoch: Epoch) -> Optional[Root]:
        return self._tree(epoch_prefix(epoch)).root()

    def get_sub_roots(self, epochs: Iterable[Epoch]) -> dict[Epoch, Optional[Root]]:
        return {epoch: self.get_sub_root(epoch) for epoch in epochs}

    def get_top_root(self) -> Root:
        return self._tree(top_prefix()).root()

    def generate_sub_proof(self, epoch: Epoch, stakers: Iterable[Staker]) -> Proof:
        keys = [address_key(staker) for staker in stakers]
        return self._tree(epoch_prefix(epoch)).merkle_proof(keys)

    def generate_top_proof(self, epochs: Iterable[Epoch]) -> Proof:
        return self._tree(top_prefix()).merkle_proof([epoch_key(epoch) for epoch in epochs])


class RewardSmt:
    """A single tree mapping each address to the last epoch its reward was claimed."""

    def __init__(self, store: SmtStore) -> None:
        self._store = store

    def _tree(self) -> SparseMerkleTree:
        return open_tree(self._store, REWARD_TABLE)

    def insert(self, epoch: Epoch, address: Address) -> None:
        self._tree().update_all([(address_key(address), LeafValue.from_u64(epoch))])

    def get_root(self) -> Root:
        return self._tree().root()

    def get_epoch(self, address: Address) -> Optional[Epoch]:
        leaf = self._tree().get(address_key(address))
        return None if leaf.is_zero() else leaf.to_u64()

    def generate_proof(self, addresses: Iterable[Address]) -> Proof:
        return self._tree().merkle_proof([address_key(address) for address in addresses])


class ProposalSmt:
    """Per-epoch proposal counts of validators, with a top tree of epoch roots."""

    def __init__(self, store: SmtStore) -> None:
        self._store = store

    def _tree(self, prefix: bytes) -> SparseMerkleTree:
        return open_tree(self._store, PROPOSAL_TABLE, prefix)

    def insert(
        self, epoch: Epoch, proposals: Iterable[tuple[Validator, ProposalCount]]
    ) -> None:
        kvs = [
            (address_key(validator), LeafValue.from_u64(count))
            for validator, count in proposals
        ]
        self._tree(epoch_prefix(epoch)).update_all(kvs)
        root = self.get_sub_root(epoch)
        self._tree(top_prefix()).update_all([(epoch_key(epoch), LeafValue.from_root(root))])

    def get_count(self, epoch: Epoch, validator: Validator) -> Optional[ProposalCount]:
        leaf = self._tree(epoch_prefix(epoch)).get(address_key(validator))
        return None if leaf.is_zero() else leaf.to_u64()

    def get_sub_leaves(self, epoch: Epoch) -> dict[Validator, ProposalCount]:
        return sub_leaves(self._store, PROPOSAL_TABLE, epoch_prefix(epoch), LeafValue.to_u64)

    def get_sub_root(self, epoch: Epoch) -> Optional[Root]:
        return self._tree(epoch_prefix(epoch)).root()

    def get_sub_roots(self, epochs: Iterable[Epoch]) -> dict[Epoch, Optional[Root]]:
        return {epoch: self.get_sub_root(epoch) for epoch in epochs}

    def get_top_root(self) -> Root:
        return self._tree(top_prefix()).root()

    def generate_sub_proof(self, epoch: Epoch, validators: Iterable[Validator]) -> Proof:
        keys = [address_key(validator) for validator in validators]
        return self._tree(epoch_prefix(epoch)).merkle_proof(keys)

    def generate_top_proof(self, epochs: Iterable[Epoch]) -> Proof:
        return self._tree(top_prefix()).merkle_proof([epoch_key(epoch) for epoch in epochs])