import asyncio

import pytest

from sparkstake.ckb_types import RpcSearchKey
from sparkstake.global_state import GlobalState, load_from_dir
from sparkstake.scan_state import ScanTip
from sparkstake.subscription import CkbSubscriptionClient


def make_key(fill: str = "00") -> RpcSearchKey:
    return RpcSearchKey.from_json(
        {
            "script": {"code_hash": "0x" + fill * 32, "hash_type": "type", "args": "0x"},
            "script_type": "lock",
            "script_search_mode": None,
            "filter": None,
        }
    )


class _Tip:
    def __init__(self, number):
        self.block_number = number


class _Page:
    def __init__(self):
        self.objects = []


class FakeRpc:
    def __init__(self, tip):
        self.tip = tip
        self.tip_calls = 0

    async def get_indexer_tip(self):
        self.tip_calls += 1
        return _Tip(self.tip)

    async def get_cells(self, search_key, order, limit, after):
        return _Page()


def make_client(tmp_path, tip):
    return CkbSubscriptionClient(FakeRpc(tip), GlobalState(tmp_path, scan_interval=10.0))


@pytest.mark.asyncio
async def test_register_new_key(tmp_path):
    client = make_client(tmp_path, 100)
    key = make_key()
    assert await client.register(key, 10) is True
    assert key in client.global_state.state.cell_states
    assert key in client.global_state.cell_handles
    await client.close()


@pytest.mark.asyncio
async def test_register_twice_is_refused(tmp_path):
    client = make_client(tmp_path, 100)
    key = make_key()
    assert await client.register(key, 10) is True
    calls = client.client.tip_calls
    assert await client.register(key, 10) is False
    assert client.client.tip_calls == calls
    await client.close()


@pytest.mark.asyncio
async def test_register_start_not_behind_tip(tmp_path):
    client = make_client(tmp_path, 100)
    key = make_key()
    assert await client.register(key, 100) is False
    assert await client.register(key, 200) is False
    assert client.global_state.state.cell_states == {}
    assert client.global_state.cell_handles == {}
    await client.close()


@pytest.mark.asyncio
async def test_register_accepts_hex_start(tmp_path):
    client = make_client(tmp_path, 100)
    key = make_key()
    assert await client.register(key, "0xa") is True
    tip = client.global_state.state.cell_states[key]
    assert isinstance(tip, ScanTip)
    await client.close()


@pytest.mark.asyncio
async def test_delete_cancels_scan(tmp_path):
    client = make_client(tmp_path, 100)
    key = make_key()
    await client.register(key, 10)
    task = client.global_state.cell_handles[key]
    assert await client.delete(key) is True
    await asyncio.sleep(0)
    assert task.cancelled()
    assert key not in client.global_state.state.cell_states
    assert await client.delete(key) is False
    await client.close()


@pytest.mark.asyncio
async def test_delete_unknown_key(tmp_path):
    client = make_client(tmp_path, 100)
    assert await client.delete(make_key("22")) is False
    await client.close()


@pytest.mark.asyncio
async def test_close_saves_registered_keys(tmp_path):
    client = make_client(tmp_path, 100)
    key = make_key()
    await client.register(key, 10)
    await client.close()
    saved = load_from_dir(tmp_path)
    assert list(saved.cell_states) == [key]


@pytest.mark.asyncio
async def test_start_resumes_saved_searches(tmp_path):
    key = make_key()
    seed = GlobalState(tmp_path)
    seed.state.cell_states[key] = ScanTip(7)
    seed.dump_to_dir(tmp_path)

    client = await CkbSubscriptionClient.start("http://127.0.0.1:8114", tmp_path)
    assert set(client.global_state.cell_handles) == {key}
    assert client.global_state.state.cell_states[key].load() == 7
    await client.close()
    assert (tmp_path / "scan_state").exists()


@pytest.mark.asyncio
async def test_start_with_empty_dir_writes_state(tmp_path):
    state_dir = tmp_path / "fresh"
    client = await CkbSubscriptionClient.start("http://127.0.0.1:8114", state_dir)
    await asyncio.sleep(0.01)
    assert (state_dir / "scan_state").exists()
    await client.close()
    assert load_from_dir(state_dir).cell_states == {}


@pytest.mark.asyncio
async def test_start_rejects_bad_uri(tmp_path):
    with pytest.raises(ValueError):
        await CkbSubscriptionClient.start("not a uri", tmp_path)