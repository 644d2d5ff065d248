"""A contract that releases received tokens to a recipient linearly over time."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Optional

from stakestream.cosmos import (
    UINT128_MAX,
    Env,
    MessageInfo,
    NotFound,
    Overflow,
    OverflowOperation,
    Response,
    addr_validate,
    checked_sub,
    to_json_binary,
)
from stakestream.cw20 import Cw20ReceiveMsg, Cw20Transfer, cw20_call
from stakestream.stream_types import (
    AmountLessThanDuration,
    Config,
    ConfigResponse,
    GetConfig,
    GetStream,
    InstantiateMsg,
    InvalidStartTime,
    ListStreams,
    ListStreamsResponse,
    NoFundsToClaim,
    NotStreamRecipient,
    NumericOverflow,
    Receive,
    Stream,
    StreamFullyClaimed,
    StreamNotFound,
    StreamParams,
    StreamResponse,
    Unauthorized,
    Withdraw,
    parse_receive_msg,
)

CONTRACT_NAME = "stakestream:streams"
DEFAULT_LIST_LIMIT = 5


def _response(stream_id: int, stream: Stream) -> StreamResponse:
    return StreamResponse(
        id=stream_id,
        owner=stream.owner,
        recipient=stream.recipient,
        amount=stream.amount,
        claimed_amount=stream.claimed_amount,
        start_time=stream.start_time,
        end_time=stream.end_time,
        rate_per_second=stream.rate_per_second,
    )


@dataclass
class StreamsContract:
    """Holds token streams created by deposits from one token contract."""

    contract_version: Optional[str] = None
    stored_config: Optional[Config] = None
    stream_seq: int = 0
    streams: dict[int, Stream] = field(default_factory=dict)

    def _load_config(self) -> Config:
        if self.stored_config is None:
            raise NotFound("Config")
        return self.stored_config

    def _save_stream(self, stream: Stream) -> int:
        self.stream_seq += 1
        self.streams[self.stream_seq] = stream
        return self.stream_seq

    def instantiate(self, env: Env, info: MessageInfo, msg: InstantiateMsg) -> Response:
        owner = addr_validate(msg.owner) if msg.owner is not None else info.sender
        cw20_addr = addr_validate(msg.cw20_addr)
        self.contract_version = CONTRACT_NAME
        self.stored_config = Config(owner=owner, cw20_addr=cw20_addr)
        self.stream_seq = 0
        return (
            Response()
            .add_attribute("method", "instantiate")
            .add_attribute("owner", owner)
            .add_attribute("cw20_addr", msg.cw20_addr)
        )

    def execute(self, env: Env, info: MessageInfo, msg: Any) -> Response:
        match msg:
            case Receive(wrapped=wrapped):
                return self.receive(env, info, wrapped)
            case Withdraw(id=stream_id):
                return self.withdraw(env, info, stream_id)
        raise TypeError(f"unknown execute message: {msg!r}")

    def create_stream(self, env: Env, params: StreamParams) -> Response:
        config = self._load_config()
        owner = addr_validate(params.owner)
        recipient = addr_validate(params.recipient)
        start_time, end_time = params.start_time, params.end_time

        if start_time > end_time:
            raise InvalidStartTime()
        if start_time <= env.block.time.seconds():
            raise InvalidStartTime()

        duration = end_time - start_time
        if params.amount < duration:
            raise AmountLessThanDuration()
        if duration == 0:
            raise NumericOverflow()

        # The duration must divide the amount evenly; the remainder goes back.
        refund = params.amount % duration
        amount = params.amount - refund
        rate_per_second = amount // duration

        stream = Stream(
            owner=owner,
            recipient=recipient,
            amount=amount,
            claimed_amount=0,
            start_time=start_time,
            end_time=end_time,
            rate_per_second=rate_per_second,
        )
        stream_id = self._save_stream(stream)

        response = (
            Response()
            .add_attribute("method", "create_stream")
            .add_attribute("stream_id", stream_id)
            .add_attribute("owner", owner)
            .add_attribute("recipient", recipient)
            .add_attribute("amount", amount)
            .add_attribute("start_time", start_time)
            .add_attribute("end_time", end_time)
        )
        if refund > 0:
            response.add_message(
                cw20_call(config.cw20_addr, Cw20Transfer(recipient=owner, amount=refund))
            )
        return response

    def receive(self, env: Env, info: MessageInfo, wrapped: Cw20ReceiveMsg) -> Response:
        config = self._load_config()
        if config.cw20_addr != info.sender:
            raise Unauthorized()
        inner = parse_receive_msg(wrapped.msg)
        return self.create_stream(
            env,
            StreamParams(
                owner=wrapped.sender,
                recipient=inner.recipient,
                amount=wrapped.amount,
                start_time=inner.start_time,
                end_time=inner.end_time,
            ),
        )

    def withdraw(self, env: Env, info: MessageInfo, stream_id: int) -> Response:
        stream = self.streams.get(stream_id)
        if stream is None:
            raise StreamNotFound()
        if stream.recipient != info.sender:
            raise NotStreamRecipient(stream.recipient)
        if stream.claimed_amount >= stream.amount:
            raise StreamFullyClaimed()

        block_time = env.block.time.seconds()
        time_passed = max(min(block_time, stream.end_time) - stream.start_time, 0)
        vested = time_passed * stream.rate_per_second
        if vested > UINT128_MAX:
            raise Overflow(OverflowOperation.MUL, time_passed, stream.rate_per_second)
        released = checked_sub(vested, stream.claimed_amount)
        if released == 0:
            raise NoFundsToClaim()

        self.streams[stream_id] = dataclasses.replace(stream, claimed_amount=vested)

        config = self._load_config()
        transfer = cw20_call(
            config.cw20_addr, Cw20Transfer(recipient=stream.recipient, amount=released)
        )
        return (
            Response()
            .add_attribute("method", "withdraw")
            .add_attribute("stream_id", stream_id)
            .add_attribute("amount", released)
            .add_attribute("recipient", stream.recipient)
            .add_message(transfer)
        )

    def query(self, env: Env, msg: Any) -> bytes:
        match msg:
            case GetConfig():
                return to_json_binary(self.config())
            case GetStream(id=stream_id):
                return to_json_binary(self.stream(stream_id))
            case ListStreams(start=start, limit=limit):
                return to_json_binary(self.list_streams(start, limit))
        raise TypeError(f"unknown query message: {msg!r}")

    def config(self) -> ConfigResponse:
        config = self._load_config()
        return ConfigResponse(owner=config.owner, cw20_addr=config.cw20_addr)

    def stream(self, stream_id: int) -> StreamResponse:
        stream = self.streams.get(stream_id)
        if stream is None:
            raise NotFound("Stream")
        return _response(stream_id, stream)

    def list_streams(self, start: Optional[int], limit: Optional[int]) -> ListStreamsResponse:
        """Streams in ascending id order, from an inclusive start id."""
        limit = DEFAULT_LIST_LIMIT if limit is None else limit
        ids = sorted(i for i in self.streams if start is None or i >= start)
        return ListStreamsResponse(
            streams=tuple(_response(i, self.streams[i]) for i in ids[:limit])
        )