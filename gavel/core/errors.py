"""
Error kinds returned by engine operations.

Every engine operation reports failure as a value rather than raising:
operations return ``(result, error)`` where ``error`` is ``None`` on
success or an ``AuctionError``. A rejected operation never mutates state.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    """Why an operation was rejected."""
    UNAUTHORIZED = "unauthorized"
    INVALID_SCHEDULE = "invalid_schedule"
    AUCTION_CLOSED = "auction_closed"
    NOT_STARTED = "not_started"
    ALREADY_STARTED = "already_started"
    ALREADY_ENDED = "already_ended"
    NOT_YET_ENDABLE = "not_yet_endable"
    BIDS_EXIST = "bids_exist"
    ZERO_BID = "zero_bid"
    ZERO_DEPOSIT = "zero_deposit"
    MISMATCHED_AMOUNT = "mismatched_amount"
    INVALID_INPUT = "invalid_input"
    ROSTER_FULL = "roster_full"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    NO_DEPOSIT = "no_deposit"
    INVALID_PERCENTAGE = "invalid_percentage"
    AUCTION_NOT_ENDED = "auction_not_ended"
    TRANSFER_FAILED = "transfer_failed"
    REENTRANT_CALL = "reentrant_call"


@dataclass(frozen=True)
class AuctionError:
    """A rejected operation: the kind plus a human-readable reason."""
    kind: ErrorKind
    message: str = ""

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind.value}: {self.message}"
        return self.kind.value


class TransferError(Exception):
    """Raised by a funds backend that cannot complete a transfer."""


def fail(kind: ErrorKind, message: str = "") -> AuctionError:
    """Shorthand used by the engine guards."""
    return AuctionError(kind=kind, message=message)


__all__ = [
    "ErrorKind",
    "AuctionError",
    "TransferError",
    "fail",
]
