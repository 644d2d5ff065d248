"""Chain primitives shared by the contracts: amounts, decimals, time, messages and a mock chain."""

from __future__ import annotations

import base64
import dataclasses
import enum
import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

UINT128_MAX = 2**128 - 1
DECIMAL_FRACTIONAL = 10**18
DECIMAL_PLACES = 18
NANOS_PER_SECOND = 1_000_000_000

MOCK_CONTRACT_ADDR = "cosmos2contract"

_DIGITS = re.compile(r"[0-9]+")


class ContractError(Exception):
    """Base of every error a contract can raise; equal when type and arguments match."""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContractError):
            return NotImplemented
        return type(self) is type(other) and self.args == other.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class StdError(ContractError):
    """Errors raised by the standard chain primitives."""


class OverflowOperation(enum.Enum):
    ADD = "Add"
    SUB = "Sub"
    MUL = "Mul"


class Overflow(StdError):
    """An arithmetic operation left the range of a 128-bit unsigned integer."""

    def __init__(self, operation: OverflowOperation, operand1: int, operand2: int) -> None:
        super().__init__(operation, operand1, operand2)
        self.operation = operation
        self.operand1 = operand1
        self.operand2 = operand2

    def __str__(self) -> str:
        return (
            f"Overflow: Cannot {self.operation.value} with "
            f"{self.operand1} and {self.operand2}"
        )


class GenericError(StdError):
    """A free-form error."""

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg

    def __str__(self) -> str:
        return f"Generic error: {self.msg}"


class NotFound(StdError):
    """A stored item does not exist."""

    def __init__(self, kind: str) -> None:
        super().__init__(kind)
        self.kind = kind

    def __str__(self) -> str:
        return f"{self.kind} not found"


def checked_add(a: int, b: int) -> int:
    """Add two Uint128 values, raising Overflow past the maximum."""
    result = a + b
    if result > UINT128_MAX:
        raise Overflow(OverflowOperation.ADD, a, b)
    return result


def checked_sub(a: int, b: int) -> int:
    """Subtract two Uint128 values, raising Overflow below zero."""
    if b > a:
        raise Overflow(OverflowOperation.SUB, a, b)
    return a - b


def multiply_ratio(value: int, numerator: int, denominator: int) -> int:
    """Return floor(value * numerator / denominator) as a Uint128."""
    if denominator == 0:
        raise ZeroDivisionError("Denominator must not be zero")
    result = value * numerator // denominator
    if result > UINT128_MAX:
        raise Overflow(OverflowOperation.MUL, value, numerator)
    return result


@dataclass(frozen=True, order=True)
class Decimal:
    """Fixed-point decimal with 18 fractional digits, stored as atomic units."""

    atomics: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.atomics <= UINT128_MAX:
            raise GenericError("Decimal value out of range")

    @classmethod
    def one(cls) -> "Decimal":
        return cls(DECIMAL_FRACTIONAL)

    @classmethod
    def percent(cls, value: int) -> "Decimal":
        return cls(value * 10**16)

    @classmethod
    def from_ratio(cls, numerator: int, denominator: int) -> "Decimal":
        if denominator == 0:
            raise ZeroDivisionError("Denominator must not be zero")
        return cls(numerator * DECIMAL_FRACTIONAL // denominator)

    @classmethod
    def from_str(cls, text: str) -> "Decimal":
        whole, sep, fractional = text.partition(".")
        if not _DIGITS.fullmatch(whole):
            raise GenericError("Error parsing whole")
        atomics = int(whole) * DECIMAL_FRACTIONAL
        if sep:
            if not _DIGITS.fullmatch(fractional):
                raise GenericError("Error parsing fractional")
            if len(fractional) > DECIMAL_PLACES:
                raise GenericError("Cannot parse more than 18 fractional digits")
            atomics += int(fractional.ljust(DECIMAL_PLACES, "0"))
        if atomics > UINT128_MAX:
            raise GenericError("Value too big")
        return cls(atomics)

    def mul_floor(self, amount: int) -> int:
        """Multiply a Uint128 amount by this decimal, rounding down."""
        result = amount * self.atomics // DECIMAL_FRACTIONAL
        if result > UINT128_MAX:
            raise Overflow(OverflowOperation.MUL, amount, self.atomics)
        return result

    def is_zero(self) -> bool:
        return self.atomics == 0

    def __mul__(self, other: object) -> int:
        if isinstance(other, int) and not isinstance(other, bool):
            return self.mul_floor(other)
        return NotImplemented

    __rmul__ = __mul__

    def __str__(self) -> str:
        whole, fractional = divmod(self.atomics, DECIMAL_FRACTIONAL)
        if fractional == 0:
            return str(whole)
        return f"{whole}.{fractional:018d}".rstrip("0")


@dataclass(frozen=True)
class Coin:
    """An amount of one native denomination."""

    denom: str
    amount: int

    def to_json(self) -> dict:
        return {"denom": self.denom, "amount": str(self.amount)}

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


def coin(amount: int, denom: str) -> Coin:
    return Coin(denom=denom, amount=amount)


def coins(amount: int, denom: str) -> list[Coin]:
    return [coin(amount, denom)]


@dataclass(frozen=True, order=True)
class Timestamp:
    """A point in time with nanosecond precision."""

    nanos: int

    @classmethod
    def from_seconds(cls, seconds: int) -> "Timestamp":
        return cls(seconds * NANOS_PER_SECOND)

    def plus_seconds(self, seconds: int) -> "Timestamp":
        return Timestamp(self.nanos + seconds * NANOS_PER_SECOND)

    def seconds(self) -> int:
        return self.nanos // NANOS_PER_SECOND

    def to_json(self) -> str:
        return str(self.nanos)


@dataclass(frozen=True)
class BlockInfo:
    height: int
    time: Timestamp
    chain_id: str = "cosmos-testnet-14002"


@dataclass(frozen=True)
class Env:
    """The block being executed and the address of the running contract."""

    block: BlockInfo
    contract_address: str = MOCK_CONTRACT_ADDR

    def plus_seconds(self, seconds: int) -> "Env":
        """Return a copy of this environment with block time moved forward."""
        block = dataclasses.replace(self.block, time=self.block.time.plus_seconds(seconds))
        return dataclasses.replace(self, block=block)


@dataclass(frozen=True)
class MessageInfo:
    sender: str
    funds: tuple[Coin, ...] = ()


def mock_env() -> Env:
    return Env(
        block=BlockInfo(height=12_345, time=Timestamp(1_571_797_419_879_305_533)),
        contract_address=MOCK_CONTRACT_ADDR,
    )


def mock_info(sender: str, funds: Iterable[Coin] = ()) -> MessageInfo:
    return MessageInfo(sender=sender, funds=tuple(funds))


class ExpirationKind(enum.Enum):
    AT_HEIGHT = "at_height"
    AT_TIME = "at_time"
    NEVER = "never"


@dataclass(frozen=True)
class Expiration:
    """When something stops being valid: at a block height, at a time, or never."""

    kind: ExpirationKind = ExpirationKind.NEVER
    value: Union[int, Timestamp, None] = None

    @classmethod
    def at_height(cls, height: int) -> "Expiration":
        return cls(ExpirationKind.AT_HEIGHT, height)

    @classmethod
    def at_time(cls, time: Timestamp) -> "Expiration":
        return cls(ExpirationKind.AT_TIME, time)

    @classmethod
    def never(cls) -> "Expiration":
        return cls(ExpirationKind.NEVER, None)

    def is_expired(self, block: BlockInfo) -> bool:
        if self.kind is ExpirationKind.AT_HEIGHT:
            return block.height >= self.value
        if self.kind is ExpirationKind.AT_TIME:
            return block.time >= self.value
        return False

    def to_json(self) -> dict:
        if self.kind is ExpirationKind.AT_HEIGHT:
            return {"at_height": self.value}
        if self.kind is ExpirationKind.AT_TIME:
            return {"at_time": self.value.to_json()}
        return {"never": {}}


class DurationKind(enum.Enum):
    HEIGHT = "height"
    TIME = "time"


@dataclass(frozen=True)
class Duration:
    """A span measured in blocks or in seconds."""

    kind: DurationKind
    value: int

    @classmethod
    def height(cls, blocks: int) -> "Duration":
        return cls(DurationKind.HEIGHT, blocks)

    @classmethod
    def time(cls, seconds: int) -> "Duration":
        return cls(DurationKind.TIME, seconds)

    def after(self, block: BlockInfo) -> Expiration:
        if self.kind is DurationKind.HEIGHT:
            return Expiration.at_height(block.height + self.value)
        return Expiration.at_time(block.time.plus_seconds(self.value))

    def __mul__(self, factor: object) -> "Duration":
        if isinstance(factor, int) and not isinstance(factor, bool):
            return Duration(self.kind, self.value * factor)
        return NotImplemented

    __rmul__ = __mul__

    def __add__(self, other: object) -> "Duration":
        if not isinstance(other, Duration):
            return NotImplemented
        if other.kind is not self.kind:
            raise GenericError("Cannot add height and time")
        return Duration(self.kind, self.value + other.value)

    def to_json(self) -> dict:
        return {self.kind.value: self.value}


HOUR = Duration.time(60 * 60)
DAY = Duration.time(24 * 60 * 60)
WEEK = Duration.time(7 * 24 * 60 * 60)


@dataclass(frozen=True)
class BankSend:
    to_address: str
    amount: tuple[Coin, ...]


@dataclass(frozen=True)
class StakingDelegate:
    validator: str
    amount: Coin


@dataclass(frozen=True)
class StakingUndelegate:
    validator: str
    amount: Coin


@dataclass(frozen=True)
class WithdrawDelegatorReward:
    validator: str


@dataclass(frozen=True)
class WasmExecute:
    contract_addr: str
    msg: bytes
    funds: tuple[Coin, ...] = ()


@dataclass
class Response:
    """Messages to dispatch and attributes to emit after an execution."""

    messages: list = field(default_factory=list)
    attributes: list[tuple[str, str]] = field(default_factory=list)

    def add_message(self, message: Any) -> "Response":
        self.messages.append(message)
        return self

    def add_attribute(self, key: str, value: Any) -> "Response":
        self.attributes.append((key, str(value)))
        return self


@dataclass(frozen=True)
class Validator:
    address: str
    commission: Decimal = Decimal(0)
    max_commission: Decimal = Decimal(0)
    max_change_rate: Decimal = Decimal(0)


@dataclass(frozen=True)
class FullDelegation:
    delegator: str
    validator: str
    amount: Coin
    can_redelegate: Optional[Coin] = None
    accumulated_rewards: tuple[Coin, ...] = ()


class MockQuerier:
    """In-memory view of bank balances and staking state."""

    def __init__(self, balances: Optional[dict[str, Iterable[Coin]]] = None) -> None:
        self.balances: dict[str, list[Coin]] = {
            address: list(funds) for address, funds in (balances or {}).items()
        }
        self.bonded_denom = ""
        self.validators: list[Validator] = []
        self.delegations: list[FullDelegation] = []

    def update_staking(
        self,
        denom: str,
        validators: Iterable[Validator],
        delegations: Iterable[FullDelegation],
    ) -> None:
        self.bonded_denom = denom
        self.validators = list(validators)
        self.delegations = list(delegations)

    def update_balance(self, address: str, coins: Iterable[Coin]) -> None:
        self.balances[address] = list(coins)

    def query_all_validators(self) -> list[Validator]:
        return list(self.validators)

    def query_bonded_denom(self) -> str:
        return self.bonded_denom

    def query_all_delegations(self, delegator: str) -> list[FullDelegation]:
        return [d for d in self.delegations if d.delegator == delegator]

    def query_balance(self, address: str, denom: str) -> Coin:
        found = next(
            (c for c in self.balances.get(address, ()) if c.denom == denom), None
        )
        return Coin(denom=denom, amount=found.amount if found else 0)


def addr_validate(address: str) -> str:
    """Check a human-readable address the way the mock chain API does."""
    if len(address) < 3:
        raise GenericError("Invalid input: human address too short")
    if len(address) > 54:
        raise GenericError("Invalid input: human address too long")
    if address != address.lower():
        raise GenericError("Invalid input: address not normalized")
    return address


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "to_json"):
        return _to_jsonable(value.to_json())
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: _to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def to_json_binary(value: Any) -> bytes:
    """Serialize a value to compact JSON bytes, as messages travel on chain."""
    return json.dumps(_to_jsonable(value), separators=(",", ":")).encode("utf-8")