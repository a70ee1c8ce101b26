import pytest

from sparkstake.ckb_types import (
    Cell,
    CellType,
    IndexerScriptSearchMode,
    IndexerTip,
    OutPoint,
    Pagination,
    RpcSearchKey,
    RpcSearchKeyFilter,
    Script,
    ScriptType,
    SearchKeyFilter,
    TxWithCell,
    TxWithCells,
    parse_tx,
)

CODE_HASH = bytes(range(32))
TX_HASH = bytes([7] * 32)


def make_script(args=b"\x01\x02"):
    return Script(CODE_HASH, "type", args)


def make_key(key_filter=None):
    return RpcSearchKey(
        make_script(), ScriptType.LOCK, IndexerScriptSearchMode.EXACT, key_filter
    )


def test_script_round_trip():
    script = make_script()
    assert Script.from_json(script.to_json()) == script
    assert script.to_json()["code_hash"] == "0x" + CODE_HASH.hex()


def test_script_validation():
    with pytest.raises(ValueError):
        Script(CODE_HASH, "bogus")
    with pytest.raises(ValueError):
        Script(b"\x00" * 31, "type")


def test_out_point_round_trip():
    point = OutPoint(TX_HASH, 3)
    assert OutPoint.from_json(point.to_json()) == point
    assert int(point.to_json()["index"], 16) == 3


def test_indexer_tip_from_json():
    tip = IndexerTip.from_json({"block_hash": "0x" + TX_HASH.hex(), "block_number": hex(500)})
    assert tip.block_number == 500
    assert tip.block_hash == TX_HASH


def test_into_key_defaults_filter():
    key = make_key().into_key((1, 16))
    assert key.filter == SearchKeyFilter(block_range=(1, 16))
    assert key.group_by_transaction is True
    assert key.with_data is None
    assert key.script_search_mode is IndexerScriptSearchMode.EXACT


def test_into_key_keeps_filter_fields():
    key_filter = RpcSearchKeyFilter(script_len_range=[0, 33])
    key = make_key(key_filter).into_key((2, 4))
    assert key.filter.script_len_range == (0, 33)
    assert key.filter.block_range == (2, 4)


def test_search_key_json():
    data = make_key().into_key((1, 16)).to_json()
    assert data["script_type"] == "lock"
    assert data["group_by_transaction"] is True
    assert [int(x, 16) for x in data["filter"]["block_range"]] == [1, 16]
    assert data["filter"]["script"] is None


def test_rpc_search_key_round_trip_and_hash():
    key = make_key(RpcSearchKeyFilter(output_capacity_range=(10, 20)))
    restored = RpcSearchKey.from_json(key.to_json())
    assert restored == key
    assert {key: 1}[restored] == 1


def test_rpc_filter_rejects_bad_range():
    with pytest.raises(ValueError):
        RpcSearchKeyFilter.from_json({"script_len_range": ["0x1"]})


def test_parse_tx_ungrouped():
    tx = parse_tx(
        {
            "tx_hash": "0x" + TX_HASH.hex(),
            "block_number": hex(9),
            "tx_index": hex(1),
            "io_index": hex(2),
            "io_type": "output",
        }
    )
    assert tx == TxWithCell(TX_HASH, 9, 1, 2, CellType.OUTPUT)


def test_parse_tx_grouped():
    tx = parse_tx(
        {
            "tx_hash": "0x" + TX_HASH.hex(),
            "block_number": hex(9),
            "tx_index": hex(1),
            "cells": [["input", hex(0)], ["output", hex(3)]],
        }
    )
    assert isinstance(tx, TxWithCells)
    assert tx.cells == ((CellType.INPUT, 0), (CellType.OUTPUT, 3))
    assert tx.tx_hash == TX_HASH


def test_pagination_of_cells():
    script = make_script()
    cell_json = {
        "output": {"capacity": hex(6100000000), "lock": script.to_json(), "type": None},
        "output_data": "0xabcd",
        "out_point": OutPoint(TX_HASH, 0).to_json(),
        "block_number": hex(12),
        "tx_index": hex(0),
    }
    page = Pagination.from_json(
        {"objects": [cell_json], "last_cursor": "0x01"}, Cell.from_json
    )
    assert page.last_cursor == b"\x01"
    (cell,) = page.objects
    assert cell.output.capacity == 6100000000
    assert cell.output.lock == script
    assert cell.output.type_script is None
    assert cell.output_data == bytes.fromhex("abcd")
    assert cell.block_number == 12