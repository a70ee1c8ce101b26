from types import SimpleNamespace

import pytest

from sparkstake.cell_process import CellProcess, RpcSubmit
from sparkstake.ckb_types import RpcSearchKey
from sparkstake.errors import RpcInvalidData
from sparkstake.scan_state import ScanTip

KEY_JSON = {
    "script": {"code_hash": "0x" + "11" * 32, "hash_type": "type", "args": "0x"},
    "script_type": "lock",
    "script_search_mode": None,
    "filter": None,
}


class FakeRpc:
    def __init__(self, tip, objects, error=None):
        self.tip = tip
        self.objects = objects
        self.error = error
        self.calls = []

    async def get_indexer_tip(self):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(block_number=self.tip)

    async def get_cells(self, search_key, order, limit, after):
        self.calls.append((search_key, order, limit, after))
        return SimpleNamespace(objects=list(self.objects))


class FakeProcess:
    def __init__(self, close_after_notify=False):
        self.cells = []
        self.closed = False
        self.close_after_notify = close_after_notify

    def is_closed(self):
        return self.closed

    async def notify_axon(self, cell):
        self.cells.append(cell)
        if self.close_after_notify:
            self.closed = True
        return True


@pytest.mark.asyncio
async def test_rpc_submit_accepts_cells():
    submit = RpcSubmit()
    assert submit.is_closed() is False
    assert await submit.notify_axon({"cell": 1}) is True


@pytest.mark.asyncio
async def test_scan_advances_and_notifies():
    key = RpcSearchKey.from_json(KEY_JSON)
    cell = object()
    rpc = FakeRpc(100, [cell])
    process = FakeProcess()
    tip = ScanTip(10)
    worker = CellProcess(key, tip, rpc, process, interval=0)
    assert await worker.scan() is True
    assert tip.load() == 100 - 24
    assert process.cells == [cell]
    search_key, order, limit, after = rpc.calls[0]
    assert search_key.to_json() == key.into_key([10, 76]).to_json()
    assert (order, limit, after) == ("asc", 1, None)


@pytest.mark.asyncio
async def test_scan_waits_when_tip_too_close():
    key = RpcSearchKey.from_json(KEY_JSON)
    rpc = FakeRpc(30, [object()])
    process = FakeProcess()
    tip = ScanTip(10)
    worker = CellProcess(key, tip, rpc, process, interval=0)
    assert await worker.scan() is False
    assert tip.load() == 10
    assert rpc.calls == []
    assert process.cells == []


@pytest.mark.asyncio
async def test_scan_without_cells_still_moves_tip():
    key = RpcSearchKey.from_json(KEY_JSON)
    rpc = FakeRpc(50, [])
    process = FakeProcess()
    tip = ScanTip(0)
    worker = CellProcess(key, tip, rpc, process, interval=0)
    assert await worker.scan() is True
    assert tip.load() == 26
    assert process.cells == []


@pytest.mark.asyncio
async def test_run_ends_when_submitter_closes():
    key = RpcSearchKey.from_json(KEY_JSON)
    rpc = FakeRpc(100, ["cell"])
    process = FakeProcess(close_after_notify=True)
    tip = ScanTip(0)
    await CellProcess(key, tip, rpc, process, interval=0).run()
    assert process.cells == ["cell"]
    assert tip.load() == 76


@pytest.mark.asyncio
async def test_stopped_process_does_not_scan():
    key = RpcSearchKey.from_json(KEY_JSON)
    rpc = FakeRpc(100, ["cell"])
    worker = CellProcess(key, ScanTip(0), rpc, FakeProcess(), interval=0)
    worker.stop()
    await worker.run()
    assert rpc.calls == []


@pytest.mark.asyncio
async def test_rpc_error_propagates():
    key = RpcSearchKey.from_json(KEY_JSON)
    rpc = FakeRpc(100, [], error=RpcInvalidData("bad"))
    worker = CellProcess(key, ScanTip(0), rpc, FakeProcess(), interval=0)
    with pytest.raises(RpcInvalidData):
        await worker.run()