"""Delegation Merkle trees and the manager that owns every staking tree."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Union

from .smt_types import (
    DELEGATOR_TABLE,
    Amount,
    Delegator,
    Epoch,
    LeafValue,
    Proof,
    Root,
    Staker,
    UserAmount,
    address_key,
    address_prefix,
    epoch_key,
    epoch_prefix,
    top_prefix,
)
from .sparse_tree import SmtStore, SparseMerkleTree, open_tree, sub_leaves
from .stake_smt import ProposalSmt, RewardSmt, StakeSmt


def _sub_prefix(epoch: Epoch, staker: Staker) -> bytes:
    return epoch_prefix(epoch) + address_prefix(staker)


def _top_prefix(staker: Staker) -> bytes:
    return top_prefix() + address_prefix(staker)


class DelegateSmt:
    """One pair of trees per staker holding the amounts delegated to it.

    Sub tree (per epoch and staker): delegator address key -> amount.
    Top tree (per staker): epoch key -> sub tree root.
    """

    def __init__(self, store: SmtStore, stake: Optional[StakeSmt] = None) -> None:
        self._store = store
        self._stake = stake if stake is not None else StakeSmt(store)

    def _tree(self, prefix: bytes) -> SparseMerkleTree:
        return open_tree(self._store, DELEGATOR_TABLE, prefix)

    def _insert_full(
        self, epoch: Epoch, delegators: dict[Staker, list[tuple[bytes, LeafValue]]]
    ) -> None:
        for staker, kvs in delegators.items():
            self._tree(_sub_prefix(epoch, staker)).update_all(kvs)
            root = self.get_sub_root(epoch, staker)
            self._tree(_top_prefix(staker)).update_all(
                [(epoch_key(epoch), LeafValue.from_root(root))]
            )

    def new_epoch(self, epoch: Epoch) -> None:
        """Carry every staker's delegations of the previous epoch into a new epoch."""
        if epoch == 0:
            return
        delegators = {
            staker: [
                (address_key(delegator), LeafValue.from_amount(amount))
                for delegator, amount in self.get_sub_leaves(epoch - 1, staker).items()
            ]
            for staker in self._stake.get_sub_leaves(epoch - 1)
        }
        self._insert_full(epoch, delegators)

    def insert(self, epoch: Epoch, delegators: Iterable[tuple[Staker, UserAmount]]) -> None:
        by_staker: dict[bytes, dict[bytes, list[tuple[int, bool]]]] = {}
        for staker, record in delegators:
            by_staker.setdefault(bytes(staker), {}).setdefault(record.user, []).append(
                (record.amount, record.is_increase)
            )

        updated: dict[Staker, list[tuple[bytes, LeafValue]]] = {}
        for staker, by_delegator in by_staker.items():
            kvs = []
            for delegator, changes in by_delegator.items():
                amount = self.get_amount(epoch, staker, delegator) or 0
                for value, increase in changes:
                    amount = amount + value if increase else max(amount - value, 0)
                kvs.append((address_key(delegator), LeafValue.from_amount(amount)))
            updated[staker] = kvs
        self._insert_full(epoch, updated)

    def remove(self, epoch: Epoch, delegators: Iterable[tuple[Staker, Delegator]]) -> None:
        removed: dict[Staker, list[tuple[bytes, LeafValue]]] = {}
        for staker, delegator in delegators:
            removed.setdefault(bytes(staker), []).append(
                (address_key(delegator), LeafValue.zero())
            )
        self._insert_full(epoch, removed)

    def get_amount(
        self, epoch: Epoch, staker: Staker, delegator: Delegator
    ) -> Optional[Amount]:
        leaf = self._tree(_sub_prefix(epoch, staker)).get(address_key(delegator))
        return None if leaf.is_zero() else leaf.to_amount()

    def get_sub_leaves(self, epoch: Epoch, staker: Staker) -> dict[Delegator, Amount]:
        return sub_leaves(
            self._store, DELEGATOR_TABLE, _sub_prefix(epoch, staker), LeafValue.to_amount
        )

    def get_sub_root(self, epoch: Epoch, staker: Staker) -> Optional[Root]:
        return self._tree(_sub_prefix(epoch, staker)).root()

    def get_sub_roots(
        self, epochs: Iterable[Epoch], staker: Staker
    ) -> dict[Epoch, Optional[Root]]:
        return {epoch: self.get_sub_root(epoch, staker) for epoch in epochs}

    def get_top_root(self, staker: Staker) -> Root:
        return self._tree(_top_prefix(staker)).root()

    def get_top_roots(self, stakers: Iterable[Staker]) -> dict[Staker, Root]:
        return {bytes(staker): self.get_top_root(staker) for staker in stakers}

    def generate_sub_proof(
        self, staker: Staker, epoch: Epoch, delegators: Iterable[Delegator]
    ) -> Proof:
        keys = [address_key(delegator) for delegator in delegators]
        return self._tree(_sub_prefix(epoch, staker)).merkle_proof(keys)

    def generate_top_proof(self, epochs: Iterable[Epoch], staker: Staker) -> Proof:
        keys = [epoch_key(epoch) for epoch in epochs]
        return self._tree(_top_prefix(staker)).merkle_proof(keys)


class SmtManager:
    """Opens the tree store at a path and exposes the staker, delegator,
    reward and proposal trees kept in it."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.store = SmtStore(path)
        self.stake = StakeSmt(self.store)
        self.delegate = DelegateSmt(self.store, self.stake)
        self.reward = RewardSmt(self.store)
        self.proposal = ProposalSmt(self.store)

    def __enter__(self) -> SmtManager:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.store.close()