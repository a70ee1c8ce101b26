import pytest

from sparkstake.errors import StoreCreationError
from sparkstake.smt_types import (
    STAKER_TABLE,
    LeafValue,
    address_key,
    column_families,
    epoch_prefix,
)
from sparkstake.sparse_tree import SmtStore, open_tree, sub_leaves

ALICE = bytes([1] * 20)
BOB = bytes([2] * 20)
CAROL = bytes([3] * 20)


@pytest.fixture
def store(tmp_path):
    smt_store = SmtStore(tmp_path / "smt")
    yield smt_store
    smt_store.close()


def test_empty_tree_root_is_zero(store):
    tree = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    assert tree.root() == bytes(32)


def test_missing_key_reads_zero(store):
    tree = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    assert tree.get(address_key(ALICE)) == LeafValue.zero()


def test_update_then_get_round_trip(store):
    tree = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    tree.update_all([(address_key(ALICE), LeafValue.from_amount(42))])
    assert tree.get(address_key(ALICE)).to_amount() == 42


def test_update_returns_stored_root(store):
    tree = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    root = tree.update_all([(address_key(ALICE), LeafValue.from_amount(1))])
    assert root == tree.root()
    assert root != bytes(32)


def test_zeroing_every_leaf_restores_empty_root(store):
    tree = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    tree.update_all([(address_key(ALICE), LeafValue.from_amount(1))])
    tree.update_all([(address_key(ALICE), LeafValue.zero())])
    assert tree.root() == open_tree(store, STAKER_TABLE, epoch_prefix(9)).root()
    assert tree.get(address_key(ALICE)).is_zero()


def test_root_does_not_depend_on_insertion_order(store):
    first = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    second = open_tree(store, STAKER_TABLE, epoch_prefix(2))
    pairs = [
        (address_key(ALICE), LeafValue.from_amount(5)),
        (address_key(BOB), LeafValue.from_amount(7)),
        (address_key(CAROL), LeafValue.from_amount(9)),
    ]
    first.update_all(pairs)
    for pair in reversed(pairs):
        second.update_all([pair])
    assert first.root() == second.root()


def test_prefixes_are_isolated(store):
    first = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    second = open_tree(store, STAKER_TABLE, epoch_prefix(2))
    first.update_all([(address_key(ALICE), LeafValue.from_amount(5))])
    assert second.get(address_key(ALICE)).is_zero()
    assert second.root() == open_tree(store, STAKER_TABLE, epoch_prefix(3)).root()


def test_sub_leaves_decodes_only_its_prefix(store):
    open_tree(store, STAKER_TABLE, epoch_prefix(1)).update_all(
        [
            (address_key(ALICE), LeafValue.from_amount(5)),
            (address_key(BOB), LeafValue.from_amount(7)),
        ]
    )
    open_tree(store, STAKER_TABLE, epoch_prefix(2)).update_all(
        [(address_key(CAROL), LeafValue.from_amount(9))]
    )
    leaves = sub_leaves(store, STAKER_TABLE, epoch_prefix(1), LeafValue.to_amount)
    assert leaves == {ALICE: 5, BOB: 7}


def test_values_survive_reopening(tmp_path):
    path = tmp_path / "smt"
    with SmtStore(path) as first:
        root = open_tree(first, STAKER_TABLE, epoch_prefix(1)).update_all(
            [(address_key(ALICE), LeafValue.from_amount(3))]
        )
    with SmtStore(path) as second:
        tree = open_tree(second, STAKER_TABLE, epoch_prefix(1))
        assert tree.get(address_key(ALICE)).to_amount() == 3
        assert tree.root() == root


def test_proof_of_no_keys_is_empty(store):
    tree = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    assert tree.merkle_proof([]) == b""


def test_proof_of_lone_leaf_has_only_zero_siblings(store):
    tree = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    tree.update_all([(address_key(ALICE), LeafValue.from_amount(3))])
    assert tree.merkle_proof([address_key(ALICE)]) == b"\x00" * 256


def test_proof_ignores_duplicate_keys(store):
    tree = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    tree.update_all(
        [
            (address_key(ALICE), LeafValue.from_amount(3)),
            (address_key(BOB), LeafValue.from_amount(4)),
        ]
    )
    single = tree.merkle_proof([address_key(ALICE)])
    assert tree.merkle_proof([address_key(ALICE), address_key(ALICE)]) == single


def test_proof_changes_when_sibling_leaf_added(store):
    tree = open_tree(store, STAKER_TABLE, epoch_prefix(1))
    tree.update_all([(address_key(ALICE), LeafValue.from_amount(3))])
    before = tree.merkle_proof([address_key(ALICE)])
    tree.update_all([(address_key(BOB), LeafValue.from_amount(4))])
    after = tree.merkle_proof([address_key(ALICE)])
    assert before != after
    assert len(after) > len(before)


def test_unknown_table_is_rejected(store):
    with pytest.raises(KeyError):
        open_tree(store, "ledger", b"")


def test_iter_prefix_rejects_unknown_family(store):
    with pytest.raises(KeyError):
        store.iter_prefix("ledger_leaf", b"")


def test_store_path_that_is_a_file_fails(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(StoreCreationError):
        SmtStore(blocker)


def test_failed_transaction_rolls_back(store):
    leaf_cf = column_families(STAKER_TABLE)[1]
    with pytest.raises(RuntimeError):
        with store.transaction() as txn:
            txn.put(leaf_cf, b"key", b"value")
            raise RuntimeError("boom")
    assert list(store.iter_prefix(leaf_cf, b"")) == []


def test_iter_prefix_is_sorted_and_filtered(store):
    leaf_cf = column_families(STAKER_TABLE)[1]
    with store.transaction() as txn:
        txn.put(leaf_cf, b"ab2", b"2")
        txn.put(leaf_cf, b"ab1", b"1")
        txn.put(leaf_cf, b"ba1", b"3")
    assert list(store.iter_prefix(leaf_cf, b"ab")) == [(b"ab1", b"1"), (b"ab2", b"2")]