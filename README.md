# sparkstake

Bookkeeping for a staking chain: how much each staker staked in each epoch,
what was delegated to whom, up to which epoch each address claimed its
reward, and how many blocks each validator proposed. The package has four
parts:

- **Sparse Merkle trees** (`sparkstake.sparse_tree`, `sparkstake.stake_smt`,
  `sparkstake.smt_manager`) keeping stake, delegation, reward and proposal
  data, with per-epoch sub trees, a top tree over their roots, and proofs for
  any set of keys.
- **A transaction history store** (`sparkstake.relation_db`) in SQLite.
- **A JSON-RPC query API** (`sparkstake.rpc_server`) over that store, served
  with aiohttp.
- **A CKB indexer watcher** (`sparkstake.ckb_client`, `sparkstake.cell_process`,
  `sparkstake.subscription`) that follows cells matching a search key and keeps
  its progress on disk.

## Encodings

Tree keys and values are 32-byte words, built by `sparkstake.smt_types`:

```python
from sparkstake.smt_types import LeafValue, address_key, epoch_key

value = LeafValue.from_amount(100)      # u128 little-endian, zero padded
assert value.to_amount() == 100
assert LeafValue.zero().is_zero()

key = epoch_key(3)                      # u64 little-endian, zero padded
staker_key = address_key(bytes([5]) * 20)
```

`sparkstake.convert` packs and unpacks little-endian integers and checks the
length of fixed-size byte fields:

```python
from sparkstake.convert import new_u128, to_uint128

assert new_u128(to_uint128(100)) == 100
```

## Merkle trees

`SmtManager` opens (and creates if needed) a tree store in a directory and
exposes `stake`, `delegate`, `reward` and `proposal`:

```python
from sparkstake.smt_manager import SmtManager
from sparkstake.smt_types import UserAmount

staker = bytes([5]) * 20
delegator = bytes([6]) * 20

with SmtManager("./smt-data") as smt:
    smt.stake.insert(1, [UserAmount(staker, 100, True)])
    assert smt.stake.get_amount(1, staker) == 100

    smt.delegate.insert(1, [(staker, UserAmount(delegator, 40, True))])
    smt.stake.new_epoch(2)       # carry stakers into epoch 2
    smt.delegate.new_epoch(2)    # carry their delegations too

    smt.reward.insert(2, staker)
    smt.proposal.insert(2, [(staker, 10)])

    proof = smt.stake.generate_sub_proof(2, [staker])
    top = smt.stake.get_top_root()
```

Inserting a decrease subtracts and stops at zero; `remove` sets a leaf to zero,
which deletes it. A key that is absent reads as `None`. Every write to a sub
tree also updates the top tree entry for that epoch. Nodes are hashed with
personalised BLAKE2b-256; the root of an empty tree is 32 zero bytes. Proofs
are a compact list of the non-empty sibling hashes along the paths of the
requested keys.

## Transaction history

```python
from sparkstake.relation_db import TransactionHistory, TransactionRecord

async def demo():
    async with await TransactionHistory.open("sqlite::memory:") as history:
        await history.insert(TransactionRecord(
            address="0x" + "00" * 20, timestamp=1, operation=1, event=1,
            tx_hash="0x01", total_amount=100, stake_amount=1, delegate_amount=1,
            withdrawable_amount=1, stake_rate="", delegate_rate="", epoch=1, status=1,
        ))
        records = await history.get_records_by_address(bytes(20), 0, 4)
```

`establish_connection` accepts `sqlite::memory:`, `sqlite://<path>` or
`sqlite:<path>` and runs `migrate_up`, which creates the `transaction` table;
`migrate_down` drops it. Ranged queries return the rows whose id lies strictly
between `offset` and `offset + limit`, in id order. `get_top_stake_address`
orders by `total_amount`. Database failures raise `SqlCursorError`.

## Query API

`DefaultAPIAdapter(relation_storage, smt_storage)` passes queries on to the
transaction store. `StatusRpcModule(adapter)` answers `getStakeRate`,
`getStakeState`, `getRewardState`, `getStakeHistory`, `getRewardHistory`,
`getStakeAmountByEpoch`, `getTopStakeAddress` and
`getLatestStakeTransactions`; `AxonStatusRpc(adapter)` answers
`getChainState`. Each gives an `RpcModule` through `into_rpc()`; modules can
be merged and answer request objects with `handle`.

```python
from sparkstake.rpc_server import mock_server

async def serve(adapter):
    server = await mock_server(adapter)   # free port on 127.0.0.1
    print(server.url)
    await server.close()
```

`start_server(module, host, port)` serves any module over HTTP POST at `/`,
including batch requests. Parameters may be positional or named; addresses are
0x-prefixed hex, enums are given by name (`"Stake"`, `"Add"`) or by integer
code. Adapter failures come back with code `-32603` and message `"Api error"`;
a query that finds no record comes back with code `-32602`. A port that cannot
be bound raises `HttpServerError`.

## Watching cells

`CkbRpcClient(uri)` calls `get_cells`, `get_live_cell`, `get_indexer_tip` and
`send_transaction` on a CKB node; transport failures raise
`RpcConnectionAborted` and error or malformed answers raise `RpcInvalidData`.

A `CellProcess` polls the indexer tip. When the tip minus 24 blocks is past
its last scanned block, it searches that range, hands the first matching cell
to its submitter and moves its `ScanTip` forward; otherwise it waits 8
seconds. `CkbSubscriptionClient.start(ckb_uri, path)` resumes every watch saved
under `path`, lets you `register(search_key, start)` and `delete(search_key)`,
and writes the state to `path/scan_state` every minute and on `close()`.

## Script constants

`sparkstake.scripts` holds the code hashes and deployment cells of the
on-chain scripts on mainnet and testnet as `Script` values, whose `cell_dep()`
gives the cell dependency, together with `INAUGURATION`, `TOKEN_BYTES`,
`START_EPOCH` and `FEE_RATE`.

## What it does not do

- It builds and signs no transactions; `sparkstake.errors` only defines the
  errors a transaction builder would raise (`CkbTxError` and its subclasses).
- There are no methods for staking, delegating or withdrawing through the API;
  it answers queries only, and `getChainState` always reports zeros.
- `RpcSubmit`, the submitter used for watched cells, only logs each cell; it
  forwards nothing to another chain.
- There is no command-line program; everything is used as a library.