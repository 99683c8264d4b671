"""
Bid Admission - validates and records bids.

Admission rules, checked in order:
1. The auction must not have ended.
2. The auction must be configured and ``now`` at or after the start time.
3. A bid must carry value (declared or attached).
4. Declared and attached amounts must agree. Every bid is fully funded,
   so a sealed bid always carries exactly the value it declares.
5. A new bidder is only admitted while the roster has room.

Open bids compete for the highest bid with a strict ``>``: an equal bid
never displaces the incumbent. Sealed bids are recorded but never
compared. Funds attached to a bid are held as escrow, not credited to
the bidder's deposit.
"""

from typing import List, Optional, Tuple

from gavel.core.auction.phases import AuctionState, Phase, effective_phase
from gavel.core.errors import AuctionError, ErrorKind, fail
from gavel.core.events import BidPlaced, Observer, notify
from gavel.core.state.ledger import Bid, BidKind, Ledger
from gavel.utils.logger import get_logger

logger = get_logger("admission")

# Default cap on distinct bidders
DEFAULT_MAX_BIDDERS = 10_000


class BidAdmission:
    """
    Admits bids into the ledger and maintains the highest-bid pointer.

    Args:
        ledger: Participant ledger to record bids in
        state: Shared auction state
        observers: Event sinks notified of admitted bids
        max_bidders: Roster capacity
    """

    def __init__(
        self,
        ledger: Ledger,
        state: AuctionState,
        observers: Optional[List[Observer]] = None,
        max_bidders: int = DEFAULT_MAX_BIDDERS,
    ):
        self.ledger = ledger
        self.state = state
        self.observers = observers if observers is not None else []
        self.max_bidders = max_bidders

    def check(
        self,
        identity: str,
        sealed: bool,
        declared_amount: int,
        attached_funds: int,
        now: int,
    ) -> Optional[AuctionError]:
        """Run the admission rules without recording anything."""
        phase = effective_phase(self.state, now)

        if phase == Phase.ENDED:
            return fail(ErrorKind.AUCTION_CLOSED, "auction has ended")

        if phase != Phase.OPEN:
            return fail(ErrorKind.NOT_STARTED, f"auction not open at {now} (phase: {phase.name})")

        if declared_amount == 0 and attached_funds == 0:
            return fail(ErrorKind.ZERO_BID, "bid carries no value")

        if attached_funds != declared_amount:
            kind = "sealed" if sealed else "open"
            return fail(
                ErrorKind.MISMATCHED_AMOUNT,
                f"{kind} bid declares {declared_amount} but attaches {attached_funds}",
            )

        if not self.ledger.is_bidder(identity) and self.ledger.bidder_count >= self.max_bidders:
            return fail(ErrorKind.ROSTER_FULL, f"roster holds {self.max_bidders} bidders")

        return None

    def submit(
        self,
        identity: str,
        sealed: bool,
        declared_amount: int,
        attached_funds: int,
        now: int,
    ) -> Tuple[Optional[Bid], Optional[AuctionError]]:
        """
        Submit a bid.

        Args:
            identity: Bidder
            sealed: Record as sealed (excluded from highest-bid comparison)
            declared_amount: Amount the bidder claims to bid
            attached_funds: Value actually sent with the bid
            now: Current time from the caller's clock

        Returns:
            (recorded_bid, error)
        """
        error = self.check(identity, sealed, declared_amount, attached_funds, now)
        if error is not None:
            logger.debug(f"Bid from {identity} rejected: {error}")
            return None, error

        self.ledger.record_received(attached_funds, escrow=True)

        if sealed:
            bid = self.ledger.record_bid(identity, BidKind.SEALED, attached_funds)
            logger.debug(f"Sealed bid recorded: {identity} -> {attached_funds}")
        else:
            if attached_funds > self.state.highest_bid:
                self.state.highest_bid = attached_funds
                self.state.winning_bidder = identity
                logger.info(f"New highest bid: {identity} -> {attached_funds}")
            else:
                logger.debug(
                    f"Open bid {attached_funds} from {identity} does not beat {self.state.highest_bid}"
                )
            bid = self.ledger.record_bid(identity, BidKind.OPEN, attached_funds)

        notify(self.observers, BidPlaced(bidder=identity, amount=attached_funds, sealed=sealed))
        return bid, None


__all__ = [
    "BidAdmission",
    "DEFAULT_MAX_BIDDERS",
]
