"""Messages, stored records and errors of the token streaming contract."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

from stakestream.cosmos import ContractError, GenericError, to_json_binary
from stakestream.cw20 import Cw20ReceiveMsg

U64_MAX = 2**64 - 1


class StreamError(ContractError):
    """Errors raised by the streaming contract."""

    message = "Stream error"

    def __init__(self) -> None:
        super().__init__()

    def __str__(self) -> str:
        return self.message


class Unauthorized(StreamError):
    message = "Not authorized to perform action"


class InvalidStartTime(StreamError):
    message = (
        "The start time is invalid. Start time must be before the end time "
        "and after the current block time"
    )


class StreamFullyClaimed(StreamError):
    message = "The stream has been fully claimed"


class NotStreamRecipient(StreamError):
    message = "The stream can only be claimed by original recipient"

    def __init__(self, recipient: str) -> None:
        ContractError.__init__(self, recipient)
        self.recipient = recipient


class NoFundsToClaim(StreamError):
    message = "No tokens have vested for this stream."


class StreamNotFound(StreamError):
    message = "Stream does not exist."


class AmountLessThanDuration(StreamError):
    message = "Amount must be greater than duration"


class InvalidRecipient(StreamError):
    message = "Stream recipient cannot be the stream owner"


class NumericOverflow(StreamError):
    message = "Numerical overflow"


@dataclass(frozen=True)
class InstantiateMsg:
    cw20_addr: str
    owner: Optional[str] = None


@dataclass(frozen=True)
class Receive:
    """Tokens arrived from the token contract, carrying an inner instruction."""

    wrapped: Cw20ReceiveMsg


@dataclass(frozen=True)
class Withdraw:
    id: int


@dataclass(frozen=True)
class CreateStream:
    """Inner instruction: stream the received tokens to a recipient over time."""

    recipient: str
    start_time: int
    end_time: int

    def to_binary(self) -> bytes:
        return to_json_binary(
            {
                "create_stream": {
                    "recipient": self.recipient,
                    "start_time": self.start_time,
                    "end_time": self.end_time,
                }
            }
        )


def _u64(body: dict, key: str) -> int:
    value = body.get(key)
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U64_MAX:
        raise GenericError(f"Error parsing into type ReceiveMsg: invalid field `{key}`")
    return value


def parse_receive_msg(data: bytes) -> CreateStream:
    """Decode the inner instruction carried by a token receive notification."""
    try:
        decoded = json.loads(data)
    except (ValueError, TypeError) as exc:
        raise GenericError(f"Error parsing into type ReceiveMsg: {exc}") from exc
    if not isinstance(decoded, dict) or list(decoded) != ["create_stream"]:
        raise GenericError("Error parsing into type ReceiveMsg: unknown variant")
    body = decoded["create_stream"]
    if not isinstance(body, dict):
        raise GenericError("Error parsing into type ReceiveMsg: expected an object")
    recipient = body.get("recipient")
    if not isinstance(recipient, str):
        raise GenericError("Error parsing into type ReceiveMsg: invalid field `recipient`")
    return CreateStream(
        recipient=recipient,
        start_time=_u64(body, "start_time"),
        end_time=_u64(body, "end_time"),
    )


@dataclass(frozen=True)
class StreamParams:
    owner: str
    recipient: str
    amount: int
    start_time: int
    end_time: int


@dataclass(frozen=True)
class GetConfig:
    pass


@dataclass(frozen=True)
class GetStream:
    id: int


@dataclass(frozen=True)
class ListStreams:
    start: Optional[int] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class Config:
    owner: str
    cw20_addr: str


@dataclass(frozen=True)
class Stream:
    """A stored stream: tokens vesting linearly from start to end time."""

    owner: str
    recipient: str
    amount: int
    claimed_amount: int
    start_time: int
    end_time: int
    rate_per_second: int

    def to_json(self) -> dict:
        return {
            "owner": self.owner,
            "recipient": self.recipient,
            "amount": str(self.amount),
            "claimed_amount": str(self.claimed_amount),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "rate_per_second": str(self.rate_per_second),
        }


@dataclass(frozen=True)
class ConfigResponse:
    owner: str
    cw20_addr: str


@dataclass(frozen=True)
class StreamResponse:
    id: int
    owner: str
    recipient: str
    amount: int
    claimed_amount: int
    start_time: int
    end_time: int
    rate_per_second: int

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "owner": self.owner,
            "recipient": self.recipient,
            "amount": str(self.amount),
            "claimed_amount": str(self.claimed_amount),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "rate_per_second": str(self.rate_per_second),
        }


@dataclass(frozen=True)
class ListStreamsResponse:
    streams: tuple[StreamResponse, ...] = ()

    def to_json(self) -> dict:
        return {"streams": [s.to_json() for s in self.streams]}