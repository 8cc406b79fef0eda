"""Chain event value objects and the event-source Protocol."""

import re
from dataclasses import dataclass
from typing import Any, Protocol

from src.hb_common.enums import ChainEventType
from src.hb_common.errors import MalformedChainEventError

_SUI_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


@dataclass(frozen=True)
class ChainEvent:
    """A treasury deposit or withdrawal observed on chain.

    Fields are kept as decoded, not as trusted: validate_event() decides
    whether the event can be applied at all.
    """

    event_type: str
    address: str | None
    amount: int | None          # ledger units
    transaction_hash: str | None
    timestamp_ms: int | None = None


@dataclass
class ChainEventPage:
    events: list[ChainEvent]
    next_cursor: dict[str, Any] | None
    has_more: bool = False


class ChainEventSource(Protocol):
    """At-least-once feed of treasury events; pages may be redelivered."""

    async def fetch(self, cursor: dict[str, Any] | None) -> ChainEventPage: ...

    async def treasury_balance(self) -> int: ...


def validate_event(event: ChainEvent) -> None:
    """Raises MalformedChainEventError for anything the ledger must not apply."""
    if event.event_type not in (ChainEventType.DEPOSIT.value, ChainEventType.WITHDRAWAL.value):
        raise MalformedChainEventError(f"unknown event type {event.event_type!r}")
    if not event.transaction_hash:
        raise MalformedChainEventError("missing transaction hash")
    if not event.address or not _SUI_ADDRESS.match(event.address):
        raise MalformedChainEventError(f"invalid address {event.address!r}")
    if event.amount is None or event.amount <= 0:
        raise MalformedChainEventError(f"non-positive amount {event.amount!r}")


@dataclass
class ChainApplyStats:
    applied: int = 0
    duplicate: int = 0
    dropped: int = 0
    rejected: int = 0
