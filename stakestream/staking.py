"""A staking derivative: bonded native tokens are represented by a fungible token."""

from __future__ import annotations

import copy
import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

from stakestream.claims import Claims, ClaimsResponse
from stakestream.cosmos import (
    BankSend,
    Coin,
    ContractError,
    Decimal,
    Duration,
    Env,
    Expiration,
    MessageInfo,
    MockQuerier,
    NotFound,
    Overflow,
    Response,
    StakingDelegate,
    StakingUndelegate,
    WasmExecute,
    WithdrawDelegatorReward,
    addr_validate,
    checked_add,
    checked_sub,
    coin,
    multiply_ratio,
    to_json_binary,
)
from stakestream.cw20 import (
    AllowanceResponse,
    BalanceResponse,
    Cw20Ledger,
    MinterData,
    TokenInfo,
    TokenInfoResponse,
    Unauthorized,
)

FALLBACK_RATIO = Decimal.one()
CONTRACT_NAME = "stakestream:staking"

_F = TypeVar("_F", bound=Callable[..., Any])


class StakingError(ContractError):
    """Errors raised by the staking contract."""

    message = "Staking error"

    def __init__(self, *args: Any) -> None:
        super().__init__(*args)

    def __str__(self) -> str:
        return self.message


class NotInValidatorSet(StakingError):
    def __init__(self, validator: str) -> None:
        super().__init__(validator)
        self.validator = validator

    def __str__(self) -> str:
        return f"Validator '{self.validator}' not in current validator set"


class DifferentBondDenom(StakingError):
    def __init__(self, denom1: str, denom2: str) -> None:
        super().__init__(denom1, denom2)
        self.denom1 = denom1
        self.denom2 = denom2

    def __str__(self) -> str:
        return f"Different denominations in bonds: '{self.denom1}' vs. '{self.denom2}'"


class BondedMismatch(StakingError):
    def __init__(self, stored: int, queried: int) -> None:
        super().__init__(stored, queried)
        self.stored = stored
        self.queried = queried

    def __str__(self) -> str:
        return f"Stored bonded {self.stored}, but query bonded {self.queried}"


class EmptyBalance(StakingError):
    def __init__(self, denom: str) -> None:
        super().__init__(denom)
        self.denom = denom

    def __str__(self) -> str:
        return f"No {self.denom} tokens sent"


class UnbondTooSmall(StakingError):
    def __init__(self, min_bonded: int, denom: str) -> None:
        super().__init__(min_bonded, denom)
        self.min_bonded = min_bonded
        self.denom = denom

    def __str__(self) -> str:
        return f"Must unbond at least {self.min_bonded} {self.denom}"


class BalanceTooSmall(StakingError):
    message = "Insufficient balance in contract to process claim"


class NothingToClaim(StakingError):
    message = "No claims that can be released currently"


@dataclass(frozen=True)
class InstantiateMsg:
    name: str
    symbol: str
    decimals: int
    validator: str
    unbonding_period: Duration
    exit_tax: Decimal
    min_withdrawal: int


@dataclass(frozen=True)
class Bond:
    pass


@dataclass(frozen=True)
class Unbond:
    amount: int


@dataclass(frozen=True)
class Claim:
    pass


@dataclass(frozen=True)
class Reinvest:
    pass


@dataclass(frozen=True)
class BondAllTokens:
    """Callback the contract sends itself to bond everything it holds."""

    def to_json(self) -> dict:
        return {"_bond_all_tokens": {}}


@dataclass(frozen=True)
class Transfer:
    recipient: str
    amount: int


@dataclass(frozen=True)
class Burn:
    amount: int


@dataclass(frozen=True)
class Send:
    contract: str
    amount: int
    msg: bytes


@dataclass(frozen=True)
class IncreaseAllowance:
    spender: str
    amount: int
    expires: Optional[Expiration] = None


@dataclass(frozen=True)
class DecreaseAllowance:
    spender: str
    amount: int
    expires: Optional[Expiration] = None


@dataclass(frozen=True)
class TransferFrom:
    owner: str
    recipient: str
    amount: int


@dataclass(frozen=True)
class SendFrom:
    owner: str
    contract: str
    amount: int
    msg: bytes


@dataclass(frozen=True)
class BurnFrom:
    owner: str
    amount: int


@dataclass(frozen=True)
class ClaimsQuery:
    address: str


@dataclass(frozen=True)
class InvestmentQuery:
    pass


@dataclass(frozen=True)
class BalanceQuery:
    address: str


@dataclass(frozen=True)
class TokenInfoQuery:
    pass


@dataclass(frozen=True)
class AllowanceQuery:
    owner: str
    spender: str


@dataclass(frozen=True)
class InvestmentInfo:
    """Fixed at instantiation; controls how the contract behaves."""

    owner: str
    bond_denom: str
    unbonding_period: Duration
    exit_tax: Decimal
    validator: str
    min_withdrawal: int


@dataclass
class Supply:
    """Derivative tokens issued, native tokens bonded and native tokens owed to claims."""

    issued: int = 0
    bonded: int = 0
    claims: int = 0


@dataclass(frozen=True)
class InvestmentResponse:
    token_supply: int
    staked_tokens: Coin
    nominal_value: Decimal
    owner: str
    exit_tax: Decimal
    validator: str
    min_withdrawal: int

    def to_json(self) -> dict:
        return {
            "token_supply": str(self.token_supply),
            "staked_tokens": self.staked_tokens.to_json(),
            "nominal_value": str(self.nominal_value),
            "owner": self.owner,
            "exit_tax": str(self.exit_tax),
            "validator": self.validator,
            "min_withdrawal": str(self.min_withdrawal),
        }


_STATE_FIELDS = ("contract_version", "token", "investment", "supply", "claims")


def _atomic(method: _F) -> _F:
    """Undo every state change made by the method if it raises."""

    @functools.wraps(method)
    def wrapper(self: "StakingContract", *args: Any, **kwargs: Any) -> Any:
        saved = copy.deepcopy({name: getattr(self, name) for name in _STATE_FIELDS})
        try:
            return method(self, *args, **kwargs)
        except Exception:
            for name, value in saved.items():
                setattr(self, name, value)
            raise

    return wrapper  # type: ignore[return-value]


@dataclass
class StakingContract:
    """Bonds native tokens to one validator and issues derivative tokens for them."""

    querier: MockQuerier = field(default_factory=MockQuerier)
    contract_version: Optional[str] = None
    token: Optional[Cw20Ledger] = None
    investment: Optional[InvestmentInfo] = None
    supply: Optional[Supply] = None
    claims: Claims = field(default_factory=Claims)

    def _ledger(self) -> Cw20Ledger:
        if self.token is None:
            raise NotFound("TokenInfo")
        return self.token

    def _invest(self) -> InvestmentInfo:
        if self.investment is None:
            raise NotFound("InvestmentInfo")
        return self.investment

    def _supply(self) -> Supply:
        if self.supply is None:
            raise NotFound("Supply")
        return self.supply

    def _get_bonded(self, contract: str) -> int:
        """Total delegated by the contract; every delegation must share one denom."""
        bonds = self.querier.query_all_delegations(contract)
        if not bonds:
            return 0
        denom = bonds[0].amount.denom
        total = 0
        for delegation in bonds:
            if delegation.amount.denom != denom:
                raise DifferentBondDenom(denom, delegation.amount.denom)
            total = checked_add(total, delegation.amount.amount)
        return total

    @staticmethod
    def _assert_bonds(supply: Supply, bonded: int) -> None:
        if supply.bonded != bonded:
            raise BondedMismatch(supply.bonded, bonded)

    @_atomic
    def instantiate(self, env: Env, info: MessageInfo, msg: InstantiateMsg) -> Response:
        self.contract_version = CONTRACT_NAME
        if not any(v.address == msg.validator for v in self.querier.query_all_validators()):
            raise NotInValidatorSet(msg.validator)
        self.token = Cw20Ledger(
            TokenInfo(
                name=msg.name,
                symbol=msg.symbol,
                decimals=msg.decimals,
                total_supply=0,
                mint=MinterData(minter=env.contract_address, cap=None),
            )
        )
        self.investment = InvestmentInfo(
            owner=info.sender,
            bond_denom=self.querier.query_bonded_denom(),
            unbonding_period=msg.unbonding_period,
            exit_tax=msg.exit_tax,
            validator=msg.validator,
            min_withdrawal=msg.min_withdrawal,
        )
        self.supply = Supply()
        return Response()

    @_atomic
    def execute(self, env: Env, info: MessageInfo, msg: Any) -> Response:
        sender = info.sender
        match msg:
            case Bond():
                return self.bond(env, info)
            case Unbond(amount=amount):
                return self.unbond(env, info, amount)
            case Claim():
                return self.claim(env, info)
            case Reinvest():
                return self.reinvest(env, info)
            case BondAllTokens():
                return self.bond_all_tokens(env, info)
            case Transfer(recipient=recipient, amount=amount):
                return self._ledger().transfer(sender, recipient, amount)
            case Burn(amount=amount):
                return self._ledger().burn(sender, amount)
            case Send(contract=contract, amount=amount, msg=inner):
                return self._ledger().send(sender, contract, amount, inner)
            case IncreaseAllowance(spender=spender, amount=amount, expires=expires):
                return self._ledger().increase_allowance(env, sender, spender, amount, expires)
            case DecreaseAllowance(spender=spender, amount=amount, expires=expires):
                return self._ledger().decrease_allowance(env, sender, spender, amount, expires)
            case TransferFrom(owner=owner, recipient=recipient, amount=amount):
                return self._ledger().transfer_from(env, sender, owner, recipient, amount)
            case BurnFrom(owner=owner, amount=amount):
                return self._ledger().burn_from(env, sender, owner, amount)
            case SendFrom(owner=owner, contract=contract, amount=amount, msg=inner):
                return self._ledger().send_from(env, sender, owner, contract, amount, inner)
        raise TypeError(f"unknown execute message: {msg!r}")

    @_atomic
    def bond(self, env: Env, info: MessageInfo) -> Response:
        invest = self._invest()
        payment = next((c for c in info.funds if c.denom == invest.bond_denom), None)
        if payment is None:
            raise EmptyBalance(invest.bond_denom)

        bonded = self._get_bonded(env.contract_address)
        supply = self._supply()
        self._assert_bonds(supply, bonded)
        if supply.issued == 0 or bonded == 0:
            to_mint = FALLBACK_RATIO.mul_floor(payment.amount)
        else:
            to_mint = multiply_ratio(payment.amount, supply.issued, bonded)
        supply.bonded = checked_add(bonded, payment.amount)
        supply.issued = checked_add(supply.issued, to_mint)

        self._ledger().mint(env.contract_address, info.sender, to_mint)

        return (
            Response()
            .add_message(StakingDelegate(validator=invest.validator, amount=payment))
            .add_attribute("action", "bond")
            .add_attribute("from", info.sender)
            .add_attribute("bonded", payment.amount)
            .add_attribute("minted", to_mint)
        )

    @_atomic
    def unbond(self, env: Env, info: MessageInfo, amount: int) -> Response:
        invest = self._invest()
        if amount < invest.min_withdrawal:
            raise UnbondTooSmall(invest.min_withdrawal, invest.bond_denom)
        tax = invest.exit_tax.mul_floor(amount)

        ledger = self._ledger()
        ledger.burn(info.sender, amount)
        if tax > 0:
            ledger.mint(env.contract_address, invest.owner, tax)

        bonded = self._get_bonded(env.contract_address)
        remainder = checked_sub(amount, tax)
        supply = self._supply()
        self._assert_bonds(supply, bonded)
        unbonded = multiply_ratio(remainder, bonded, supply.issued)
        supply.bonded = checked_sub(bonded, unbonded)
        supply.issued = checked_sub(supply.issued, remainder)
        supply.claims = checked_add(supply.claims, unbonded)

        self.claims.create_claim(
            info.sender, unbonded, invest.unbonding_period.after(env.block)
        )

        return (
            Response()
            .add_message(
                StakingUndelegate(
                    validator=invest.validator, amount=coin(unbonded, invest.bond_denom)
                )
            )
            .add_attribute("action", "unbond")
            .add_attribute("to", info.sender)
            .add_attribute("unbonded", unbonded)
            .add_attribute("burnt", amount)
        )

    @_atomic
    def claim(self, env: Env, info: MessageInfo) -> Response:
        invest = self._invest()
        balance = self.querier.query_balance(env.contract_address, invest.bond_denom)
        if balance.amount < invest.min_withdrawal:
            raise BalanceTooSmall()

        to_send = self.claims.claim_tokens(info.sender, env.block, balance.amount)
        if to_send == 0:
            raise NothingToClaim()

        supply = self._supply()
        supply.claims = checked_sub(supply.claims, to_send)

        return (
            Response()
            .add_message(
                BankSend(to_address=info.sender, amount=(coin(to_send, balance.denom),))
            )
            .add_attribute("action", "claim")
            .add_attribute("from", info.sender)
            .add_attribute("amount", to_send)
        )

    def reinvest(self, env: Env, info: MessageInfo) -> Response:
        """Withdraw pending rewards, then call back to bond everything held."""
        invest = self._invest()
        callback = to_json_binary(BondAllTokens())
        return (
            Response()
            .add_message(WithdrawDelegatorReward(validator=invest.validator))
            .add_message(
                WasmExecute(contract_addr=env.contract_address, msg=callback, funds=())
            )
        )

    @_atomic
    def bond_all_tokens(self, env: Env, info: MessageInfo) -> Response:
        if info.sender != env.contract_address:
            raise Unauthorized()

        invest = self._invest()
        balance = self.querier.query_balance(env.contract_address, invest.bond_denom)
        supply = self._supply()
        try:
            available = checked_sub(balance.amount, supply.claims)
            checked_sub(available, invest.min_withdrawal)
        except Overflow:
            # Below the minimum: nothing to do, and the withdrawal stands.
            return Response()
        supply.bonded += available

        to_bond = coin(available, balance.denom)
        return (
            Response()
            .add_message(StakingDelegate(validator=invest.validator, amount=to_bond))
            .add_attribute("action", "reinvest")
            .add_attribute("bonded", available)
        )

    def query(self, env: Env, msg: Any) -> bytes:
        match msg:
            case ClaimsQuery(address=address):
                return to_json_binary(self.query_claims(address))
            case InvestmentQuery():
                return to_json_binary(self.query_investment())
            case TokenInfoQuery():
                return to_json_binary(self.query_token_info())
            case BalanceQuery(address=address):
                return to_json_binary(self.query_balance(address))
            case AllowanceQuery(owner=owner, spender=spender):
                return to_json_binary(self.query_allowance(owner, spender))
        raise TypeError(f"unknown query message: {msg!r}")

    def query_investment(self) -> InvestmentResponse:
        invest = self._invest()
        supply = self._supply()
        nominal = (
            FALLBACK_RATIO
            if supply.issued == 0
            else Decimal.from_ratio(supply.bonded, supply.issued)
        )
        return InvestmentResponse(
            token_supply=supply.issued,
            staked_tokens=coin(supply.bonded, invest.bond_denom),
            nominal_value=nominal,
            owner=invest.owner,
            exit_tax=invest.exit_tax,
            validator=invest.validator,
            min_withdrawal=invest.min_withdrawal,
        )

    def query_claims(self, address: str) -> ClaimsResponse:
        return self.claims.query_claims(addr_validate(address))

    def query_balance(self, address: str) -> BalanceResponse:
        return self._ledger().balance(address)

    def query_token_info(self) -> TokenInfoResponse:
        return self._ledger().token_info()

    def query_allowance(self, owner: str, spender: str) -> AllowanceResponse:
        return self._ledger().allowance(owner, spender)