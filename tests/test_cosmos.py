import base64
import json

import pytest

from stakestream.cosmos import (
    DAY,
    HOUR,
    MOCK_CONTRACT_ADDR,
    UINT128_MAX,
    WEEK,
    BankSend,
    Coin,
    ContractError,
    Decimal,
    Duration,
    Expiration,
    FullDelegation,
    GenericError,
    MockQuerier,
    NotFound,
    Overflow,
    OverflowOperation,
    Response,
    StakingDelegate,
    StdError,
    Timestamp,
    Validator,
    WasmExecute,
    addr_validate,
    checked_add,
    checked_sub,
    coin,
    coins,
    mock_env,
    mock_info,
    multiply_ratio,
    to_json_binary,
)


def test_checked_sub_overflow_matches_source_error():
    with pytest.raises(Overflow) as exc:
        checked_sub(0, 600)
    assert exc.value == Overflow(OverflowOperation.SUB, 0, 600)
    assert isinstance(exc.value, StdError)
    assert "600" in str(exc.value)


def test_checked_add_and_sub_round_trip():
    assert checked_sub(checked_add(1500, 810), 810) == 1500
    assert checked_sub(1000, 1000) == 0


def test_checked_add_overflow():
    with pytest.raises(Overflow) as exc:
        checked_add(UINT128_MAX, 1)
    assert exc.value.operation is OverflowOperation.ADD


def test_multiply_ratio_source_values():
    assert multiply_ratio(540, 1500, 1000) == 810
    assert multiply_ratio(3000, 1000, 1500) == 2000


def test_multiply_ratio_zero_denominator():
    with pytest.raises(ZeroDivisionError):
        multiply_ratio(10, 1, 0)


def test_decimal_ratio_and_parse_agree():
    assert Decimal.from_ratio(1500, 1000) == Decimal.from_str("1.5")
    assert Decimal.from_ratio(7, 7) == Decimal.one()


def test_decimal_percent_multiplication():
    assert Decimal.percent(10).mul_floor(600) == 60
    assert Decimal.percent(10) * 600 == 60
    assert Decimal.one() * 1000 == 1000


def test_decimal_string_round_trip():
    for text in ["1.5", "0.02", "3", "12.000000000000000001"]:
        assert str(Decimal.from_str(text)) == text
    assert str(Decimal.percent(2)) == "0.02"


def test_decimal_parse_errors():
    for bad in ["", "abc", "1.", ".5", "1.0000000000000000001", "-1"]:
        with pytest.raises(GenericError):
            Decimal.from_str(bad)


def test_decimal_is_zero_and_ordering():
    assert Decimal(0).is_zero()
    assert not Decimal.percent(1).is_zero()
    assert Decimal.percent(2) < Decimal.one()


def test_coin_helpers():
    c = coin(1000, "ustake")
    assert c == Coin(denom="ustake", amount=1000)
    assert coins(1000, "ustake") == [c]
    assert str(c) == "1000ustake"


def test_coin_json_wire_format():
    assert to_json_binary(coin(1000, "ustake")) == b'{"denom":"ustake","amount":"1000"}'


def test_timestamp_seconds():
    start = Timestamp.from_seconds(100)
    assert start.seconds() == 100
    assert start.plus_seconds(50).seconds() == 150
    assert start < start.plus_seconds(1)


def test_env_plus_seconds_moves_only_time():
    env = mock_env()
    later = env.plus_seconds(300)
    assert later.block.time.seconds() - env.block.time.seconds() == 300
    assert later.block.height == env.block.height
    assert later.contract_address == env.contract_address == MOCK_CONTRACT_ADDR


def test_mock_info_keeps_funds():
    info = mock_info("bob", [coin(10, "random"), coin(1000, "ustake")])
    assert info.sender == "bob"
    assert info.funds == (coin(10, "random"), coin(1000, "ustake"))
    assert mock_info("bob").funds == ()


def test_duration_arithmetic():
    assert DAY * 3 + HOUR == HOUR + DAY + DAY + DAY
    assert DAY * 7 == WEEK
    with pytest.raises(GenericError):
        DAY + Duration.height(5)


def test_time_duration_expiration():
    env = mock_env()
    exp = (DAY * 3).after(env.block)
    assert exp == Expiration.at_time(env.block.time.plus_seconds((DAY * 3).value))
    assert not exp.is_expired(env.block)
    assert not exp.is_expired(env.plus_seconds(DAY.value).block)
    assert exp.is_expired(env.plus_seconds((DAY * 3 + HOUR).value).block)


def test_height_duration_expiration():
    env = mock_env()
    exp = Duration.height(10).after(env.block)
    assert exp == Expiration.at_height(env.block.height + 10)
    assert not exp.is_expired(env.block)
    assert Expiration.at_height(env.block.height).is_expired(env.block)
    assert not Expiration.never().is_expired(env.block)


def test_expiration_json():
    assert to_json_binary(Expiration.never()) == b'{"never":{}}'
    assert json.loads(to_json_binary(Expiration.at_height(42))) == {"at_height": 42}


def test_response_builder_chains():
    res = (
        Response()
        .add_message(StakingDelegate(validator="val", amount=coin(5, "ustake")))
        .add_attribute("action", "bond")
        .add_attribute("minted", 5)
    )
    assert res.messages == [StakingDelegate(validator="val", amount=coin(5, "ustake"))]
    assert dict(res.attributes) == {"action": "bond", "minted": "5"}
    assert Response() == Response()


def test_to_json_binary_encodes_bytes_as_base64():
    payload = b"hello"
    msg = WasmExecute(contract_addr="cw20", msg=payload)
    decoded = json.loads(to_json_binary(msg))
    assert base64.b64decode(decoded["msg"]) == payload
    assert decoded["contract_addr"] == "cw20"
    assert decoded["funds"] == []


def test_to_json_binary_is_deterministic():
    send = BankSend(to_address="bob", amount=(coin(540, "ustake"),))
    assert to_json_binary(send) == to_json_binary(
        BankSend(to_address="bob", amount=(coin(540, "ustake"),))
    )
    assert json.loads(to_json_binary(send))["amount"][0]["amount"] == "540"


def test_mock_querier_staking():
    querier = MockQuerier()
    validator = Validator("default-validator", Decimal.percent(3))
    delegation = FullDelegation(
        delegator=MOCK_CONTRACT_ADDR,
        validator="default-validator",
        amount=coin(1000, "ustake"),
    )
    other = FullDelegation(delegator="someone", validator="x", amount=coin(1, "ustake"))
    querier.update_staking("ustake", [validator], [delegation, other])
    assert querier.query_bonded_denom() == "ustake"
    assert querier.query_all_validators() == [validator]
    assert querier.query_all_delegations(MOCK_CONTRACT_ADDR) == [delegation]


def test_mock_querier_balance():
    querier = MockQuerier()
    assert querier.query_balance(MOCK_CONTRACT_ADDR, "ustake") == coin(0, "ustake")
    querier.update_balance(MOCK_CONTRACT_ADDR, coins(500, "ustake"))
    assert querier.query_balance(MOCK_CONTRACT_ADDR, "ustake") == coin(500, "ustake")
    querier.update_balance(MOCK_CONTRACT_ADDR, [])
    assert querier.query_balance(MOCK_CONTRACT_ADDR, "ustake").amount == 0


def test_addr_validate():
    assert addr_validate("alice") == "alice"
    for bad in ["ab", "wrongCw20", "x" * 55]:
        with pytest.raises(GenericError):
            addr_validate(bad)


def test_errors_compare_by_type_and_arguments():
    assert NotFound("stream") == NotFound("stream")
    assert NotFound("stream") != GenericError("stream")
    assert isinstance(GenericError("x"), ContractError)
    assert str(NotFound("stream")) == "stream not found"