"""
Auction phases and the state record they are derived from.

The stored state only knows whether the auction has been configured and
whether it has ended. OPEN vs SCHEDULED is never stored: it is computed
from the clock by ``effective_phase``. Two reads at different ``now``
can therefore observe different phases without any write in between.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class Phase(IntEnum):
    """Lifecycle phase of an auction. Moves forward only."""
    UNCONFIGURED = 0
    SCHEDULED = 1
    OPEN = 2
    ENDED = 3


@dataclass(frozen=True)
class AuctionSchedule:
    """Operator-supplied auction parameters."""
    initial_price: int
    start_time: int
    duration: int

    @property
    def end_time(self) -> int:
        """Earliest time at which the auction may be ended regardless of price."""
        return self.start_time + self.duration


@dataclass
class AuctionState:
    """
    Mutable core of an auction.

    ``highest_bid`` and ``winning_bidder`` change only when an open bid
    strictly above the current highest is admitted.
    """
    schedule: Optional[AuctionSchedule] = None
    ended: bool = False
    highest_bid: int = 0
    winning_bidder: Optional[str] = None

    def copy(self) -> "AuctionState":
        return AuctionState(
            schedule=self.schedule,
            ended=self.ended,
            highest_bid=self.highest_bid,
            winning_bidder=self.winning_bidder,
        )

    def restore(self, snapshot: "AuctionState") -> None:
        """Overwrite every field from a copy taken earlier."""
        self.schedule = snapshot.schedule
        self.ended = snapshot.ended
        self.highest_bid = snapshot.highest_bid
        self.winning_bidder = snapshot.winning_bidder


def effective_phase(state: AuctionState, now: int) -> Phase:
    """Phase of ``state`` as observed at time ``now``."""
    if state.ended:
        return Phase.ENDED
    if state.schedule is None:
        return Phase.UNCONFIGURED
    if now >= state.schedule.start_time:
        return Phase.OPEN
    return Phase.SCHEDULED


def is_endable(state: AuctionState, now: int) -> bool:
    """
    Whether ``end`` may run at ``now``.

    True once the bidding period has elapsed, or earlier if the reserve
    (initial price) has been reached.
    """
    if state.schedule is None:
        return False
    return now >= state.schedule.end_time or state.highest_bid >= state.schedule.initial_price


__all__ = [
    "Phase",
    "AuctionSchedule",
    "AuctionState",
    "effective_phase",
    "is_endable",
]
