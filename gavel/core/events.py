"""
Auction Events - notifications emitted by the engine.

Events are handed to observers after an operation has fully succeeded.
Observers are best-effort: an exception raised by one is logged and
never undoes or fails the operation that produced the event.

EventLog:
--------
``EventLog`` is an observer that keeps every event in order and folds
each one into a running Keccak-256 digest:

    digest_n = keccak(digest_{n-1} || keccak(encode(event_n)))

Two journals of the same auction agree on the digest iff they saw the
same events in the same order.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Type, TypeVar, Union

from gavel.crypto import EMPTY_DIGEST, bytes_to_hex, encode_text, encode_uint256, keccak256
from gavel.utils.logger import get_logger

logger = get_logger("events")


# =============================================================================
# Event Types
# =============================================================================


@dataclass(frozen=True)
class BidPlaced:
    """A bid was admitted."""
    bidder: str
    amount: int
    sealed: bool

    def to_bytes(self) -> bytes:
        return (
            b"BidPlaced" +
            encode_text(self.bidder) +
            encode_uint256(self.amount) +
            (b"\x01" if self.sealed else b"\x00")
        )


@dataclass(frozen=True)
class AuctionEnded:
    """The auction was ended and the winning amount settled."""
    winning_bidder: Optional[str]
    highest_bid: int

    def to_bytes(self) -> bytes:
        return (
            b"AuctionEnded" +
            encode_text(self.winning_bidder or "") +
            encode_uint256(self.highest_bid)
        )


@dataclass(frozen=True)
class DepositReceived:
    """Funds arrived outside of a bid and were credited as a deposit."""
    depositor: str
    amount: int
    balance: int

    def to_bytes(self) -> bytes:
        return (
            b"DepositReceived" +
            encode_text(self.depositor) +
            encode_uint256(self.amount) +
            encode_uint256(self.balance)
        )


@dataclass(frozen=True)
class FundsReleased:
    """Deposit funds were transferred back to a participant."""
    recipient: str
    amount: int
    remaining: int

    def to_bytes(self) -> bytes:
        return (
            b"FundsReleased" +
            encode_text(self.recipient) +
            encode_uint256(self.amount) +
            encode_uint256(self.remaining)
        )


AuctionEvent = Union[BidPlaced, AuctionEnded, DepositReceived, FundsReleased]
Observer = Callable[[AuctionEvent], None]

E = TypeVar("E")


# =============================================================================
# Dispatch
# =============================================================================


def notify(observers: List[Observer], event: AuctionEvent) -> None:
    """
    Deliver an event to every observer.

    A failing observer is logged and skipped; the rest still receive it.
    """
    for observer in observers:
        try:
            observer(event)
        except Exception:
            logger.exception(f"Observer {observer!r} failed on {type(event).__name__}")


# =============================================================================
# Event Journal
# =============================================================================


class EventLog:
    """In-memory ordered event journal with a chained Keccak digest."""

    def __init__(self):
        self.events: List[AuctionEvent] = []
        self.digest: bytes = EMPTY_DIGEST

    def __call__(self, event: AuctionEvent) -> None:
        # an event that cannot be encoded is not journaled
        digest = keccak256(self.digest + keccak256(event.to_bytes()))
        self.events.append(event)
        self.digest = digest
        logger.debug(f"Journaled {type(event).__name__} #{len(self.events)}")

    def __len__(self) -> int:
        return len(self.events)

    def of_type(self, event_type: Type[E]) -> List[E]:
        """All journaled events of one type, in order."""
        return [e for e in self.events if isinstance(e, event_type)]

    @property
    def digest_hex(self) -> str:
        return bytes_to_hex(self.digest)


__all__ = [
    "BidPlaced",
    "AuctionEnded",
    "DepositReceived",
    "FundsReleased",
    "AuctionEvent",
    "Observer",
    "notify",
    "EventLog",
]
