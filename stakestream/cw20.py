"""A fungible token ledger with balances, allowances and minting, plus its wire messages."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Optional

from stakestream.cosmos import (
    ContractError,
    Env,
    Expiration,
    NotFound,
    Response,
    WasmExecute,
    addr_validate,
    checked_add,
    checked_sub,
    to_json_binary,
)


class Cw20Error(ContractError):
    """Errors raised by the token ledger."""

    message = "Token error"

    def __init__(self) -> None:
        super().__init__()

    def __str__(self) -> str:
        return self.message


class Unauthorized(Cw20Error):
    message = "Unauthorized"


class CannotSetOwnAccount(Cw20Error):
    message = "Cannot set to own account"


class InvalidZeroAmount(Cw20Error):
    message = "Invalid zero amount"


class Expired(Cw20Error):
    message = "Allowance is expired"


class NoAllowance(Cw20Error):
    message = "No allowance for this account"


class CannotExceedCap(Cw20Error):
    message = "Minting cannot exceed the cap"


class DuplicateInitialBalanceAddresses(Cw20Error):
    message = "Duplicate initial balance addresses"


@dataclass(frozen=True)
class MinterData:
    """Who may mint, and the optional ceiling on total supply."""

    minter: str
    cap: Optional[int] = None


@dataclass(frozen=True)
class TokenInfo:
    """Stored token metadata and supply."""

    name: str
    symbol: str
    decimals: int
    total_supply: int = 0
    mint: Optional[MinterData] = None


@dataclass(frozen=True)
class TokenInfoResponse:
    name: str
    symbol: str
    decimals: int
    total_supply: int

    def to_json(self) -> dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": str(self.total_supply),
        }


@dataclass(frozen=True)
class BalanceResponse:
    balance: int

    def to_json(self) -> dict:
        return {"balance": str(self.balance)}


@dataclass(frozen=True)
class AllowanceResponse:
    allowance: int = 0
    expires: Expiration = field(default_factory=Expiration.never)

    def to_json(self) -> dict:
        return {"allowance": str(self.allowance), "expires": self.expires.to_json()}


@dataclass(frozen=True)
class Cw20ReceiveMsg:
    """Notification handed to a contract that was sent tokens."""

    sender: str
    amount: int
    msg: bytes = b""

    def to_binary(self) -> bytes:
        return to_json_binary(
            {"receive": {"sender": self.sender, "amount": str(self.amount), "msg": self.msg}}
        )

    def into_cosmos_msg(self, contract_addr: str) -> WasmExecute:
        return WasmExecute(contract_addr=contract_addr, msg=self.to_binary(), funds=())


@dataclass(frozen=True)
class Cw20Transfer:
    """The token contract's transfer instruction."""

    recipient: str
    amount: int

    def to_binary(self) -> bytes:
        return to_json_binary(
            {"transfer": {"recipient": self.recipient, "amount": str(self.amount)}}
        )


def cw20_call(contract_addr: str, message: Any) -> WasmExecute:
    """Wrap a token instruction as a call to the token contract."""
    return WasmExecute(contract_addr=contract_addr, msg=message.to_binary(), funds=())


class Cw20Ledger:
    """Balances, allowances and supply of one token.

    Every operation checks everything before it changes state, so a raised
    error leaves the ledger as it was.
    """

    def __init__(self, info: TokenInfo) -> None:
        self.info = info
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], AllowanceResponse] = {}

    def _move(self, owner: str, recipient: str, amount: int) -> None:
        new_owner = checked_sub(self.balances.get(owner, 0), amount)
        self.balances[owner] = new_owner
        self.balances[recipient] = checked_add(self.balances.get(recipient, 0), amount)

    def _deducted_allowance(self, env: Env, owner: str, spender: str, amount: int) -> AllowanceResponse:
        current = self.allowances.get((owner, spender))
        if current is None:
            raise NoAllowance()
        if current.expires.is_expired(env.block):
            raise Expired()
        return dataclasses.replace(current, allowance=checked_sub(current.allowance, amount))

    def transfer(self, sender: str, recipient: str, amount: int) -> Response:
        if amount == 0:
            raise InvalidZeroAmount()
        recipient = addr_validate(recipient)
        checked_sub(self.balances.get(sender, 0), amount)
        self._move(sender, recipient, amount)
        return (
            Response()
            .add_attribute("action", "transfer")
            .add_attribute("from", sender)
            .add_attribute("to", recipient)
            .add_attribute("amount", amount)
        )

    def burn(self, sender: str, amount: int) -> Response:
        if amount == 0:
            raise InvalidZeroAmount()
        new_balance = checked_sub(self.balances.get(sender, 0), amount)
        new_supply = checked_sub(self.info.total_supply, amount)
        self.balances[sender] = new_balance
        self.info = dataclasses.replace(self.info, total_supply=new_supply)
        return (
            Response()
            .add_attribute("action", "burn")
            .add_attribute("from", sender)
            .add_attribute("amount", amount)
        )

    def mint(self, sender: str, recipient: str, amount: int) -> Response:
        if amount == 0:
            raise InvalidZeroAmount()
        minter = self.info.mint
        if minter is None or minter.minter != sender:
            raise Unauthorized()
        new_supply = checked_add(self.info.total_supply, amount)
        if minter.cap is not None and new_supply > minter.cap:
            raise CannotExceedCap()
        recipient = addr_validate(recipient)
        new_balance = checked_add(self.balances.get(recipient, 0), amount)
        self.info = dataclasses.replace(self.info, total_supply=new_supply)
        self.balances[recipient] = new_balance
        return (
            Response()
            .add_attribute("action", "mint")
            .add_attribute("to", recipient)
            .add_attribute("amount", amount)
        )

    def send(self, sender: str, contract: str, amount: int, msg: bytes) -> Response:
        if amount == 0:
            raise InvalidZeroAmount()
        contract = addr_validate(contract)
        checked_sub(self.balances.get(sender, 0), amount)
        self._move(sender, contract, amount)
        notice = Cw20ReceiveMsg(sender=sender, amount=amount, msg=msg)
        return (
            Response()
            .add_attribute("action", "send")
            .add_attribute("from", sender)
            .add_attribute("to", contract)
            .add_attribute("amount", amount)
            .add_message(notice.into_cosmos_msg(contract))
        )

    def increase_allowance(
        self, env: Env, owner: str, spender: str, amount: int, expires: Optional[Expiration]
    ) -> Response:
        spender = addr_validate(spender)
        if spender == owner:
            raise CannotSetOwnAccount()
        current = self.allowances.get((owner, spender), AllowanceResponse())
        updated = AllowanceResponse(
            allowance=checked_add(current.allowance, amount),
            expires=expires if expires is not None else current.expires,
        )
        self.allowances[(owner, spender)] = updated
        return (
            Response()
            .add_attribute("action", "increase_allowance")
            .add_attribute("owner", owner)
            .add_attribute("spender", spender)
            .add_attribute("amount", amount)
        )

    def decrease_allowance(
        self, env: Env, owner: str, spender: str, amount: int, expires: Optional[Expiration]
    ) -> Response:
        spender = addr_validate(spender)
        if spender == owner:
            raise CannotSetOwnAccount()
        key = (owner, spender)
        current = self.allowances.get(key)
        if current is None:
            raise NotFound("cw20::AllowanceResponse")
        if amount < current.allowance:
            self.allowances[key] = AllowanceResponse(
                allowance=current.allowance - amount,
                expires=expires if expires is not None else current.expires,
            )
        else:
            del self.allowances[key]
        return (
            Response()
            .add_attribute("action", "decrease_allowance")
            .add_attribute("owner", owner)
            .add_attribute("spender", spender)
            .add_attribute("amount", amount)
        )

    def transfer_from(
        self, env: Env, spender: str, owner: str, recipient: str, amount: int
    ) -> Response:
        owner = addr_validate(owner)
        recipient = addr_validate(recipient)
        allowance = self._deducted_allowance(env, owner, spender, amount)
        checked_sub(self.balances.get(owner, 0), amount)
        self.allowances[(owner, spender)] = allowance
        self._move(owner, recipient, amount)
        return (
            Response()
            .add_attribute("action", "transfer_from")
            .add_attribute("from", owner)
            .add_attribute("to", recipient)
            .add_attribute("by", spender)
            .add_attribute("amount", amount)
        )

    def burn_from(self, env: Env, spender: str, owner: str, amount: int) -> Response:
        owner = addr_validate(owner)
        allowance = self._deducted_allowance(env, owner, spender, amount)
        new_balance = checked_sub(self.balances.get(owner, 0), amount)
        new_supply = checked_sub(self.info.total_supply, amount)
        self.allowances[(owner, spender)] = allowance
        self.balances[owner] = new_balance
        self.info = dataclasses.replace(self.info, total_supply=new_supply)
        return (
            Response()
            .add_attribute("action", "burn_from")
            .add_attribute("from", owner)
            .add_attribute("by", spender)
            .add_attribute("amount", amount)
        )

    def send_from(
        self, env: Env, spender: str, owner: str, contract: str, amount: int, msg: bytes
    ) -> Response:
        owner = addr_validate(owner)
        contract = addr_validate(contract)
        allowance = self._deducted_allowance(env, owner, spender, amount)
        checked_sub(self.balances.get(owner, 0), amount)
        self.allowances[(owner, spender)] = allowance
        self._move(owner, contract, amount)
        notice = Cw20ReceiveMsg(sender=spender, amount=amount, msg=msg)
        return (
            Response()
            .add_attribute("action", "send_from")
            .add_attribute("from", owner)
            .add_attribute("to", contract)
            .add_attribute("by", spender)
            .add_attribute("amount", amount)
            .add_message(notice.into_cosmos_msg(contract))
        )

    def balance(self, address: str) -> BalanceResponse:
        return BalanceResponse(balance=self.balances.get(addr_validate(address), 0))

    def token_info(self) -> TokenInfoResponse:
        return TokenInfoResponse(
            name=self.info.name,
            symbol=self.info.symbol,
            decimals=self.info.decimals,
            total_supply=self.info.total_supply,
        )

    def allowance(self, owner: str, spender: str) -> AllowanceResponse:
        key = (addr_validate(owner), addr_validate(spender))
        return self.allowances.get(key, AllowanceResponse())