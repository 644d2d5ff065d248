"""Time-locked claims on tokens that are waiting to be released."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from stakestream.cosmos import BlockInfo, Expiration, checked_add


@dataclass(frozen=True)
class Claim:
    """An amount that becomes payable once its release point is reached."""

    amount: int
    release_at: Expiration

    def to_json(self) -> dict:
        return {"amount": str(self.amount), "release_at": self.release_at.to_json()}


@dataclass(frozen=True)
class ClaimsResponse:
    claims: tuple[Claim, ...] = ()

    def to_json(self) -> dict:
        return {"claims": [c.to_json() for c in self.claims]}


@dataclass
class Claims:
    """Pending claims per address, kept in the order they were created."""

    by_address: dict[str, list[Claim]] = field(default_factory=dict)

    def create_claim(self, address: str, amount: int, release_at: Expiration) -> None:
        """Record a new claim for an address."""
        self.by_address.setdefault(address, []).append(
            Claim(amount=amount, release_at=release_at)
        )

    def claim_tokens(self, address: str, block: BlockInfo, cap: Optional[int]) -> int:
        """Release every mature claim that still fits under the cap; return the total."""
        to_send = 0
        waiting: list[Claim] = []
        for claim in self.by_address.get(address, []):
            if claim.release_at.is_expired(block):
                total = checked_add(to_send, claim.amount)
                if cap is None or total <= cap:
                    to_send = total
                    continue
            waiting.append(claim)
        self.by_address[address] = waiting
        return to_send

    def query_claims(self, address: str) -> ClaimsResponse:
        return ClaimsResponse(claims=tuple(self.by_address.get(address, ())))