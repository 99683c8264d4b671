"""
Auction Engine - state machine for a single-item auction.

Lifecycle:
    UNCONFIGURED --configure--> SCHEDULED --(clock >= start)--> OPEN --end--> ENDED

The SCHEDULED -> OPEN step is never written; it is read off the clock by
``effective_phase``. Only the operator may configure or end the auction.
Ending is allowed once the bidding period has elapsed, or as soon as the
highest bid reaches the initial price.

Every operation is a single atomic step: it either applies all of its
effects or returns an error and leaves the engine untouched. Results are
reported as ``(value, error)`` tuples.

Non-winning bid funds have no withdrawal path. ``unclaimed_escrow`` shows
how much value is held that way; nothing releases it.
"""

from typing import List, Optional, Tuple

from gavel.core.auction.admission import DEFAULT_MAX_BIDDERS, BidAdmission
from gavel.core.auction.phases import (
    AuctionSchedule,
    AuctionState,
    Phase,
    effective_phase,
    is_endable,
)
from gavel.core.auction.settlement import Settlement
from gavel.core.config import EngineConfig
from gavel.core.errors import AuctionError, ErrorKind, fail
from gavel.core.events import DepositReceived, Observer, notify
from gavel.core.funds import FundsTransfer
from gavel.core.state.ledger import Bid, BidKind, Ledger
from gavel.utils.logger import get_logger
from gavel.utils.validation import (
    MAX_AMOUNT,
    validate_amount,
    validate_identity,
    validate_int_type,
    validate_percentage,
    validate_timestamp,
)

logger = get_logger("engine")

Winner = Tuple[Optional[str], int]


class AuctionEngine:
    """
    One auction: ledger, admission, settlement and the phase they share.

    Args:
        operator: Identity allowed to configure and end the auction; also
            the beneficiary of the winning bid
        funds: Backend used for every outgoing transfer
        config: Engine configuration (roster capacity)
        observers: Initial event sinks
    """

    def __init__(
        self,
        operator: str,
        funds: FundsTransfer,
        config: Optional[EngineConfig] = None,
        observers: Optional[List[Observer]] = None,
    ):
        valid, err = validate_identity(operator, "operator")
        if not valid:
            raise ValueError(err)

        self.operator = operator
        self.config = config or EngineConfig()
        self.observers: List[Observer] = list(observers or [])

        self.ledger = Ledger()
        self.state = AuctionState()
        self.admission = BidAdmission(
            self.ledger,
            self.state,
            observers=self.observers,
            max_bidders=self.config.max_bidders or DEFAULT_MAX_BIDDERS,
        )
        self.settlement = Settlement(
            self.ledger,
            self.state,
            funds,
            operator,
            observers=self.observers,
        )

    def subscribe(self, observer: Observer) -> None:
        """Register an event sink."""
        self.observers.append(observer)

    # =========================================================================
    # Guards
    # =========================================================================

    def _guard_reentry(self) -> Optional[AuctionError]:
        if self.settlement.in_transfer:
            return fail(ErrorKind.REENTRANT_CALL, "a transfer is in progress")
        return None

    @staticmethod
    def _guard_inputs(*checks: Tuple[bool, str]) -> Optional[AuctionError]:
        for valid, err in checks:
            if not valid:
                return fail(ErrorKind.INVALID_INPUT, err)
        return None

    # =========================================================================
    # Configuration
    # =========================================================================

    def configure(
        self,
        initial_price: int,
        start_time: int,
        duration: int,
        now: int,
        caller: str,
    ) -> Tuple[Optional[AuctionSchedule], Optional[AuctionError]]:
        """
        Set the auction schedule.

        Allowed before the auction opens and only while no bids exist.

        Returns:
            (schedule, error)
        """
        error = self._guard_reentry() or self._guard_inputs(
            validate_amount(initial_price, "initial_price"),
            validate_timestamp(start_time, "start_time"),
            validate_timestamp(duration, "duration"),
            validate_timestamp(now, "now"),
        )
        if error is not None:
            return None, error

        if caller != self.operator:
            return None, fail(ErrorKind.UNAUTHORIZED, f"{caller} is not the operator")

        phase = effective_phase(self.state, now)
        if phase == Phase.ENDED:
            return None, fail(ErrorKind.ALREADY_ENDED, "auction has ended")
        if phase == Phase.OPEN:
            return None, fail(ErrorKind.ALREADY_STARTED, "auction is already open")
        if self.ledger.has_bids():
            return None, fail(ErrorKind.BIDS_EXIST, "cannot reconfigure once bids exist")

        if start_time <= now:
            return None, fail(ErrorKind.INVALID_SCHEDULE, f"start_time {start_time} is not after now {now}")
        if duration == 0:
            return None, fail(ErrorKind.INVALID_SCHEDULE, "duration must be positive")

        schedule = AuctionSchedule(
            initial_price=initial_price,
            start_time=start_time,
            duration=duration,
        )
        if self.state.schedule is not None:
            logger.info(f"Auction rescheduled: {self.state.schedule} -> {schedule}")
        self.state.schedule = schedule

        logger.info(
            f"Auction scheduled: price={initial_price}, "
            f"opens at {start_time}, endable from {schedule.end_time}"
        )
        return schedule, None

    # =========================================================================
    # Bidding and Deposits
    # =========================================================================

    def submit_bid(
        self,
        identity: str,
        sealed: bool,
        declared_amount: int,
        attached_funds: int,
        now: int,
    ) -> Tuple[Optional[Bid], Optional[AuctionError]]:
        """
        Submit an open or sealed bid with attached funds.

        Returns:
            (recorded_bid, error)
        """
        error = self._guard_reentry() or self._guard_inputs(
            validate_identity(identity),
            validate_amount(declared_amount, "declared_amount"),
            validate_amount(attached_funds, "attached_funds"),
            validate_timestamp(now, "now"),
        )
        if error is not None:
            return None, error

        return self.admission.submit(identity, bool(sealed), declared_amount, attached_funds, now)

    def deposit(self, identity: str, amount: int, now: int) -> Tuple[int, Optional[AuctionError]]:
        """
        Credit funds sent outside of a bid to the sender's deposit.

        Returns:
            (new_balance, error)
        """
        error = self._guard_reentry() or self._guard_inputs(
            validate_identity(identity),
            validate_amount(amount),
            validate_timestamp(now, "now"),
        )
        if error is not None:
            return 0, error

        phase = effective_phase(self.state, now)
        if phase == Phase.ENDED:
            return 0, fail(ErrorKind.AUCTION_CLOSED, "auction has ended")
        if phase == Phase.UNCONFIGURED:
            return 0, fail(ErrorKind.NOT_STARTED, "auction is not configured")
        if amount == 0:
            return 0, fail(ErrorKind.ZERO_DEPOSIT, "deposit carries no value")
        if self.ledger.deposit_of(identity) + amount > MAX_AMOUNT:
            return 0, fail(ErrorKind.INVALID_INPUT, f"deposit of {identity} would exceed {MAX_AMOUNT}")

        self.ledger.record_received(amount)
        balance = self.ledger.credit_deposit(identity, amount)

        logger.debug(f"Deposit from {identity}: +{amount} -> {balance}")
        notify(self.observers, DepositReceived(depositor=identity, amount=amount, balance=balance))
        return balance, None

    # =========================================================================
    # Ending
    # =========================================================================

    def end(self, now: int, caller: str) -> Tuple[Optional[Winner], Optional[AuctionError]]:
        """
        End the auction and settle the winning bid to the operator.

        If the settlement transfer fails the auction stays open, so calling
        ``end`` again retries settlement.

        ``AuctionEnded`` is emitted even when no open bid was placed; it then
        carries no winner and a zero bid, and nothing is transferred.

        Returns:
            ((winning_bidder, highest_bid), error)
        """
        error = self._guard_reentry() or self._guard_inputs(validate_timestamp(now, "now"))
        if error is not None:
            return None, error

        if caller != self.operator:
            return None, fail(ErrorKind.UNAUTHORIZED, f"{caller} is not the operator")
        if self.state.ended:
            return None, fail(ErrorKind.ALREADY_ENDED, "auction has already ended")
        if self.state.schedule is None:
            return None, fail(ErrorKind.NOT_STARTED, "auction is not configured")
        if not is_endable(self.state, now):
            return None, fail(
                ErrorKind.NOT_YET_ENDABLE,
                f"bidding runs until {self.state.schedule.end_time} and "
                f"reserve {self.state.schedule.initial_price} not reached",
            )

        state_before = self.state.copy()
        self.state.ended = True

        error = self.settlement.settle(state_before)
        if error is not None:
            return None, error

        logger.info(f"Auction ended: winner={self.state.winning_bidder}, bid={self.state.highest_bid}")
        return (self.state.winning_bidder, self.state.highest_bid), None

    # =========================================================================
    # Withdrawal
    # =========================================================================

    def _guard_release(self, identity: str) -> Optional[AuctionError]:
        error = self._guard_reentry() or self._guard_inputs(validate_identity(identity))
        if error is not None:
            return error
        if self.state.ended:
            return fail(ErrorKind.AUCTION_CLOSED, "auction has ended")
        return None

    def withdraw_deposit(self, identity: str) -> Tuple[int, Optional[AuctionError]]:
        """
        Withdraw a participant's entire deposit.

        Returns:
            (amount_transferred, error)
        """
        error = self._guard_release(identity)
        if error is not None:
            return 0, error
        return self.settlement.withdraw_deposit(identity)

    def refund_percentage(self, identity: str, percentage: int) -> Tuple[int, Optional[AuctionError]]:
        """
        Refund part of a participant's deposit.

        Returns:
            (amount_transferred, error)
        """
        error = self._guard_inputs(validate_int_type(percentage, "percentage"))
        if error is not None:
            return 0, error
        # checked before the phase: a bad percentage is rejected in every phase
        valid, err = validate_percentage(percentage)
        if not valid:
            return 0, fail(ErrorKind.INVALID_PERCENTAGE, err)

        error = self._guard_release(identity)
        if error is not None:
            return 0, error
        return self.settlement.refund_percentage(identity, percentage)

    # =========================================================================
    # Queries
    # =========================================================================

    def _committed_state(self) -> AuctionState:
        """State as it stands unless the in-flight transfer is rolled back."""
        pending = self.settlement.pending_rollback
        return pending if pending is not None else self.state

    def get_winner(self) -> Tuple[Optional[Winner], Optional[AuctionError]]:
        """
        Result of an ended auction.

        Returns:
            ((winning_bidder, highest_bid), error)
        """
        if not self._committed_state().ended:
            return None, fail(ErrorKind.AUCTION_NOT_ENDED, "auction has not ended")
        return (self.state.winning_bidder, self.state.highest_bid), None

    def phase(self, now: int) -> Phase:
        """Phase as observed at ``now``."""
        return effective_phase(self._committed_state(), now)

    @property
    def schedule(self) -> Optional[AuctionSchedule]:
        return self.state.schedule

    @property
    def highest_bid(self) -> int:
        return self.state.highest_bid

    @property
    def winning_bidder(self) -> Optional[str]:
        return self.state.winning_bidder

    @property
    def ended(self) -> bool:
        return self._committed_state().ended

    def bid_of(self, identity: str, kind: BidKind = BidKind.OPEN) -> Optional[Bid]:
        return self.ledger.bid_of(identity, kind)

    def bids_of(self, identity: str) -> List[Bid]:
        return self.ledger.bids_of(identity)

    def deposit_of(self, identity: str) -> int:
        return self.ledger.deposit_of(identity)

    def bidders(self) -> List[str]:
        return self.ledger.bidders()

    def unclaimed_escrow(self) -> int:
        """
        Bid funds held by the engine that are not the settled winning bid.

        Before the end this is every bid's escrow. There is no operation
        that returns it to bidders.
        """
        settled = self.state.highest_bid if self._committed_state().ended else 0
        return self.ledger.total_escrowed - settled

    def __repr__(self) -> str:
        return (
            f"AuctionEngine(operator={self.operator}, ended={self.state.ended}, "
            f"highest_bid={self.state.highest_bid}, bidders={self.ledger.bidder_count})"
        )

    def stats(self) -> dict:
        """Get engine statistics."""
        schedule = self.state.schedule
        return {
            "operator": self.operator,
            "configured": schedule is not None,
            "initial_price": schedule.initial_price if schedule else None,
            "start_time": schedule.start_time if schedule else None,
            "end_time": schedule.end_time if schedule else None,
            "ended": self.ended,
            "highest_bid": self.state.highest_bid,
            "winning_bidder": self.state.winning_bidder,
            "unclaimed_escrow": self.unclaimed_escrow(),
            **self.ledger.stats(),
        }


__all__ = [
    "AuctionEngine",
    "Winner",
]
