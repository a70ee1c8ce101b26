import pytest

from sparkstake.scripts import (
    OMNI_LOCK_TESTNET,
    SECP2561_BLAKE160_TESTNET,
    STAKE_TESTNET,
    DepType,
    Script,
    ScriptHashType,
)


def test_omni_lock_testnet_cell_dep():
    assert OMNI_LOCK_TESTNET.cell_dep() == {
        "out_point": {
            "tx_hash": "0x27b62d8be8ed80b9f56ee0fe41355becdb6f6a40aeba82d3900434f43b1c8b60",
            "index": "0x0",
        },
        "dep_type": "code",
    }


def test_secp_uses_dep_group():
    assert SECP2561_BLAKE160_TESTNET.cell_dep()["dep_type"] == "dep_group"


def test_stake_testnet_code_hash():
    assert STAKE_TESTNET.code_hash == bytes.fromhex(
        "58c63de75a92d3ed83a0636d29454173608ff27a053891258e96a9a44e84ce37"
    )
    assert STAKE_TESTNET.hash_type is ScriptHashType.TYPE
    dep = STAKE_TESTNET.cell_dep()
    assert dep["out_point"]["tx_hash"] == (
        "0xdfc4f59052fa596a2a8d0581be95450ce859e2da28c07aedb603d23429421f88"
    )
    assert dep["dep_type"] == "code"


def test_cell_dep_round_trips_tx_hash_and_index():
    script = Script(bytes(32), ScriptHashType.DATA1, bytes(range(32)), 3, DepType.CODE)
    dep = script.cell_dep()
    assert bytes.fromhex(dep["out_point"]["tx_hash"][2:]) == bytes(range(32))
    assert int(dep["out_point"]["index"], 16) == 3


def test_short_hash_is_rejected():
    with pytest.raises(ValueError):
        Script(bytes(31), ScriptHashType.TYPE, bytes(32), 0, DepType.CODE)


def test_index_out_of_range_is_rejected():
    with pytest.raises(ValueError):
        Script(bytes(32), ScriptHashType.TYPE, bytes(32), -1, DepType.CODE)