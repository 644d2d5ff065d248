# stakestream

Self-contained, in-memory models of two token contracts, with no dependencies
beyond the standard library:

- **Staking derivative** (`stakestream.staking.StakingContract`): users bond a
  native staking coin to one validator and receive a fungible derivative token
  in return. Unbonding burns derivative tokens, mints an exit tax to the owner,
  and creates a claim that matures after the unbonding period. `reinvest`
  withdraws rewards and calls back into `bond_all_tokens`, which bonds the
  contract's free balance and so raises the nominal value of each derivative
  token. The fungible-token operations (transfer, burn, send, allowances,
  transfer-from, burn-from, send-from) are handled by the same `execute`.
- **Token streams** (`stakestream.streams.StreamsContract`): tokens sent to the
  contract by its token contract are released to a recipient at a constant
  rate per second between a start and end time; any part of the deposit that
  does not divide evenly by the duration is refunded. The recipient withdraws
  whatever has vested so far.

## Modules

- `stakestream.cosmos` – Uint128 helpers (`checked_add`, `checked_sub`,
  `multiply_ratio`), the 18-digit fixed-point `Decimal`, `Coin`, `Timestamp`,
  `Env`/`BlockInfo`/`MessageInfo` with `mock_env()` and `mock_info()`,
  `Duration` and `Expiration`, the outgoing message types (`BankSend`,
  `StakingDelegate`, `StakingUndelegate`, `WithdrawDelegatorReward`,
  `WasmExecute`), `Response`, a `MockQuerier` for validators, delegations and
  balances, `addr_validate` and `to_json_binary`.
- `stakestream.cw20` – `Cw20Ledger`, a token ledger with balances, allowances,
  minting and a supply cap, plus `Cw20ReceiveMsg`, `Cw20Transfer` and
  `cw20_call`.
- `stakestream.claims` – `Claims`, time-locked claims per address.
- `stakestream.staking` – the staking contract and its messages.
- `stakestream.stream_types` – messages, stored records and errors of the
  streaming contract, and `parse_receive_msg`.
- `stakestream.streams` – the streaming contract.

Every operation returns a `Response` listing the messages the contract would
dispatch and the attributes it would emit. `query` methods return compact JSON
bytes; the `query_*` methods of `StakingContract` and the `config`, `stream`
and `list_streams` methods of `StreamsContract` return the response objects
directly.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Staking example

```python
from stakestream.cosmos import (
    Decimal, Duration, MockQuerier, Validator, coin, mock_env, mock_info,
)
from stakestream.staking import Bond, InstantiateMsg, StakingContract

querier = MockQuerier()
querier.update_staking(
    "ustake",
    [Validator("default-validator", Decimal.percent(3), Decimal.percent(10), Decimal.percent(1))],
    [],
)
contract = StakingContract(querier)
contract.instantiate(
    mock_env(),
    mock_info("creator", []),
    InstantiateMsg(
        name="Cool Derivative",
        symbol="DRV",
        decimals=9,
        validator="default-validator",
        unbonding_period=Duration.time(3 * 24 * 3600),
        exit_tax=Decimal.percent(2),
        min_withdrawal=50,
    ),
)
response = contract.execute(mock_env(), mock_info("bob", [coin(1000, "ustake")]), Bond())
print(contract.query_balance("bob").balance)          # 1000
print(contract.query_investment().nominal_value)      # 1
```

The contract checks its cached bonded amount against the querier's
delegations, so after a bond the test or caller updates the querier (for
example `querier.update_staking(...)` with a `FullDelegation`) to reflect what
the chain would now report.

## Streams example

```python
from stakestream.cosmos import mock_env, mock_info
from stakestream.cw20 import Cw20ReceiveMsg
from stakestream.stream_types import CreateStream, InstantiateMsg, Receive, Withdraw
from stakestream.streams import StreamsContract

env = mock_env()
contract = StreamsContract()
contract.instantiate(env, mock_info("cw20", []), InstantiateMsg(owner=None, cw20_addr="cw20"))

start = env.block.time.plus_seconds(100).seconds()
end = env.block.time.plus_seconds(300).seconds()
payload = CreateStream(recipient="bob", start_time=start, end_time=end).to_binary()
contract.execute(env, mock_info("cw20", []), Receive(Cw20ReceiveMsg("alice", 200, payload)))

later = env.plus_seconds(150)
contract.execute(later, mock_info("bob", []), Withdraw(id=1))   # releases 50 tokens
print(contract.stream(1).claimed_amount)                         # 50
```

## Errors

Failures are raised as exceptions, all derived from
`stakestream.cosmos.ContractError`; two errors compare equal when their type
and arguments match. Staking failures derive from
`stakestream.staking.StakingError`, stream failures from
`stakestream.stream_types.StreamError`, and token-ledger failures (including
`Unauthorized` when anyone but the contract calls `bond_all_tokens`) from
`stakestream.cw20.Cw20Error`. Arithmetic and storage failures are
`stakestream.cosmos.StdError` subclasses: `Overflow`, `GenericError` and
`NotFound`.

When a `StakingContract` operation raises, its state is restored to what it
was before the call.

## What this package does not do

Everything lives in memory in the contract objects: there is no blockchain,
no persistent storage, no dispatching of the returned messages, and no JSON
schema export. There is no command-line program; the package is used as a
library.