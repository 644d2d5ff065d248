import base64
import json

import pytest

from stakestream.cosmos import (
    MOCK_CONTRACT_ADDR,
    Expiration,
    GenericError,
    NotFound,
    Overflow,
    OverflowOperation,
    WasmExecute,
    mock_env,
)
from stakestream.cw20 import (
    AllowanceResponse,
    CannotExceedCap,
    CannotSetOwnAccount,
    Cw20Ledger,
    Cw20ReceiveMsg,
    Cw20Transfer,
    Expired,
    InvalidZeroAmount,
    MinterData,
    NoAllowance,
    TokenInfo,
    Unauthorized,
    cw20_call,
)


def make_ledger(cap=None, minter=MOCK_CONTRACT_ADDR):
    mint = MinterData(minter=minter, cap=cap) if minter else None
    return Cw20Ledger(
        TokenInfo(name="Cool Derivative", symbol="DRV", decimals=9, total_supply=0, mint=mint)
    )


@pytest.fixture
def funded():
    ledger = make_ledger()
    ledger.mint(MOCK_CONTRACT_ADDR, "bob", 1000)
    return ledger


def test_mint_updates_balance_and_supply():
    ledger = make_ledger()
    ledger.mint(MOCK_CONTRACT_ADDR, "bob", 1000)
    assert ledger.balance("bob").balance == 1000
    info = ledger.token_info()
    assert info.total_supply == 1000
    assert (info.name, info.symbol, info.decimals) == ("Cool Derivative", "DRV", 9)


def test_mint_requires_minter():
    ledger = make_ledger()
    with pytest.raises(Unauthorized):
        ledger.mint("bob", "bob", 10)
    assert ledger.token_info().total_supply == 0


def test_mint_without_minter_data_is_unauthorized():
    ledger = make_ledger(minter=None)
    with pytest.raises(Unauthorized):
        ledger.mint(MOCK_CONTRACT_ADDR, "bob", 10)


def test_mint_zero_rejected():
    with pytest.raises(InvalidZeroAmount):
        make_ledger().mint(MOCK_CONTRACT_ADDR, "bob", 0)


def test_mint_respects_cap():
    ledger = make_ledger(cap=100)
    ledger.mint(MOCK_CONTRACT_ADDR, "bob", 100)
    with pytest.raises(CannotExceedCap):
        ledger.mint(MOCK_CONTRACT_ADDR, "bob", 1)
    assert ledger.token_info().total_supply == 100
    assert ledger.balance("bob").balance == 100


def test_cw20_flow_from_staking_scenario(funded):
    env = mock_env()
    funded.transfer("bob", "carl", 200)
    assert funded.balance("bob").balance == 800
    assert funded.balance("carl").balance == 200

    funded.increase_allowance(env, "bob", "alice", 350, None)
    assert funded.balance("alice").balance == 0
    assert funded.allowance("bob", "alice").allowance == 350

    funded.transfer_from(env, "alice", "bob", "alice", 250)
    assert funded.balance("bob").balance == 550
    assert funded.balance("alice").balance == 250
    assert funded.allowance("bob", "alice").allowance == 100

    with pytest.raises(Overflow):
        funded.burn("bob", 1000)
    assert funded.balance("bob").balance == 550
    funded.burn("bob", 130)
    assert funded.balance("bob").balance == 420


def test_transfer_attributes(funded):
    res = funded.transfer("bob", "carl", 200)
    assert res.attributes == [
        ("action", "transfer"),
        ("from", "bob"),
        ("to", "carl"),
        ("amount", "200"),
    ]
    assert res.messages == []


def test_transfer_overdraw_raises_sub_overflow(funded):
    with pytest.raises(Overflow) as caught:
        funded.transfer("bob", "carl", 1001)
    assert caught.value == Overflow(OverflowOperation.SUB, 1000, 1001)
    assert funded.balance("carl").balance == 0


def test_transfer_zero_and_bad_address(funded):
    with pytest.raises(InvalidZeroAmount):
        funded.transfer("bob", "carl", 0)
    with pytest.raises(GenericError):
        funded.transfer("bob", "Carl", 5)


def test_burn_lowers_supply(funded):
    funded.burn("bob", 130)
    assert funded.token_info().total_supply + 130 == 1000
    assert funded.token_info().total_supply == funded.balance("bob").balance


def test_send_emits_receive_message(funded):
    res = funded.send("bob", "vault", 40, b"hi")
    assert funded.balance("vault").balance == 40
    expected = Cw20ReceiveMsg(sender="bob", amount=40, msg=b"hi").into_cosmos_msg("vault")
    assert res.messages == [expected]
    assert res.messages[0].contract_addr == "vault"


def test_receive_msg_binary_layout():
    data = json.loads(Cw20ReceiveMsg(sender="alice", amount=5, msg=b"{}").to_binary())
    assert data == {
        "receive": {
            "sender": "alice",
            "amount": "5",
            "msg": base64.b64encode(b"{}").decode("ascii"),
        }
    }


def test_transfer_binary_and_call():
    transfer = Cw20Transfer(recipient="bob", amount=50)
    assert transfer.to_binary() == b'{"transfer":{"recipient":"bob","amount":"50"}}'
    assert cw20_call("cw20", transfer) == WasmExecute(
        contract_addr="cw20", msg=transfer.to_binary(), funds=()
    )


def test_allowance_to_self_rejected(funded):
    with pytest.raises(CannotSetOwnAccount):
        funded.increase_allowance(mock_env(), "bob", "bob", 5, None)
    with pytest.raises(CannotSetOwnAccount):
        funded.decrease_allowance(mock_env(), "bob", "bob", 5, None)


def test_default_allowance(funded):
    assert funded.allowance("bob", "alice") == AllowanceResponse(0, Expiration.never())


def test_decrease_allowance(funded):
    env = mock_env()
    funded.increase_allowance(env, "bob", "alice", 50, None)
    funded.decrease_allowance(env, "bob", "alice", 20, Expiration.at_height(99_999))
    current = funded.allowance("bob", "alice")
    assert current.allowance == 30
    assert current.expires == Expiration.at_height(99_999)
    funded.decrease_allowance(env, "bob", "alice", 30, None)
    assert funded.allowance("bob", "alice").allowance == 0


def test_decrease_missing_allowance_not_found(funded):
    with pytest.raises(NotFound):
        funded.decrease_allowance(mock_env(), "bob", "alice", 1, None)


def test_transfer_from_without_allowance(funded):
    with pytest.raises(NoAllowance):
        funded.transfer_from(mock_env(), "alice", "bob", "alice", 1)


def test_expired_allowance(funded):
    env = mock_env()
    funded.increase_allowance(env, "bob", "alice", 50, Expiration.at_height(env.block.height))
    with pytest.raises(Expired):
        funded.transfer_from(env, "alice", "bob", "alice", 10)
    assert funded.balance("bob").balance == 1000


def test_transfer_from_over_allowance(funded):
    env = mock_env()
    funded.increase_allowance(env, "bob", "alice", 50, None)
    with pytest.raises(Overflow):
        funded.transfer_from(env, "alice", "bob", "alice", 51)
    assert funded.allowance("bob", "alice").allowance == 50


def test_failed_balance_keeps_allowance():
    ledger = make_ledger()
    ledger.mint(MOCK_CONTRACT_ADDR, "bob", 10)
    env = mock_env()
    ledger.increase_allowance(env, "bob", "alice", 100, None)
    with pytest.raises(Overflow):
        ledger.transfer_from(env, "alice", "bob", "alice", 20)
    assert ledger.allowance("bob", "alice").allowance == 100
    assert ledger.balance("bob").balance == 10


def test_burn_from_and_send_from(funded):
    env = mock_env()
    funded.increase_allowance(env, "bob", "alice", 300, None)
    funded.burn_from(env, "alice", "bob", 100)
    assert funded.token_info().total_supply == funded.balance("bob").balance
    res = funded.send_from(env, "alice", "bob", "vault", 100, b"x")
    assert funded.balance("vault").balance == 100
    assert funded.allowance("bob", "alice").allowance == 100
    expected = Cw20ReceiveMsg(sender="alice", amount=100, msg=b"x").into_cosmos_msg("vault")
    assert res.messages == [expected]
    assert ("by", "alice") in res.attributes


def test_error_messages():
    assert str(Unauthorized()) == "Unauthorized"
    assert str(CannotSetOwnAccount()) == "Cannot set to own account"
    assert str(NoAllowance()) == "No allowance for this account"
    assert Expired() == Expired()
    assert Expired() != NoAllowance()