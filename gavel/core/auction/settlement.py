"""
Settlement & Withdrawal - moving value out of the engine.

Transfer discipline (used by settlement, withdrawal and refund alike):

1. Check every precondition.
2. Snapshot the ledger and auction state.
3. Apply the mutation (debit the deposit, or mark the auction ended).
4. Call the funds backend.
5. On failure, restore the snapshot and report TRANSFER_FAILED.

While step 4 is running, ``in_transfer`` is set and ``pending_rollback``
holds the auction state from step 2. The engine rejects every mutating
call in that window and answers phase and winner queries from
``pending_rollback``, so a backend that calls back into the engine can
neither withdraw twice nor see an end that may still be undone.
"""

from typing import List, Optional, Tuple

from gavel.core.auction.phases import AuctionState
from gavel.core.errors import AuctionError, ErrorKind, fail
from gavel.core.events import AuctionEnded, FundsReleased, Observer, notify
from gavel.core.funds import FundsTransfer, send
from gavel.core.state.ledger import Ledger, LedgerSnapshot
from gavel.utils.logger import get_logger
from gavel.utils.validation import validate_percentage

logger = get_logger("settlement")


class Settlement:
    """
    Pays the operator at the end of the auction and releases deposits.

    Args:
        ledger: Participant ledger
        state: Shared auction state
        funds: External funds backend
        operator: Beneficiary of the winning bid
        observers: Event sinks
    """

    def __init__(
        self,
        ledger: Ledger,
        state: AuctionState,
        funds: FundsTransfer,
        operator: str,
        observers: Optional[List[Observer]] = None,
    ):
        self.ledger = ledger
        self.state = state
        self.funds = funds
        self.operator = operator
        self.observers = observers if observers is not None else []
        self.in_transfer = False
        # state to restore if the in-flight transfer fails
        self.pending_rollback: Optional[AuctionState] = None

    # =========================================================================
    # Transfer
    # =========================================================================

    def _pay(
        self,
        to: str,
        amount: int,
        ledger_snapshot: LedgerSnapshot,
        state_snapshot: AuctionState,
    ) -> Optional[AuctionError]:
        """
        Transfer ``amount`` to ``to``, rolling back to the snapshots on failure.

        Returns:
            None on success, TRANSFER_FAILED otherwise
        """
        self.ledger.record_paid_out(amount)
        self.in_transfer = True
        self.pending_rollback = state_snapshot
        try:
            ok, reason = send(self.funds, to, amount)
        except Exception:
            self._rollback(ledger_snapshot, state_snapshot)
            raise
        finally:
            self.in_transfer = False
            self.pending_rollback = None

        if not ok:
            self._rollback(ledger_snapshot, state_snapshot)
            return fail(ErrorKind.TRANSFER_FAILED, reason)
        return None

    def _rollback(self, ledger_snapshot: LedgerSnapshot, state_snapshot: AuctionState) -> None:
        self.ledger.restore(ledger_snapshot)
        self.state.restore(state_snapshot)
        logger.debug("Rolled back ledger and auction state after failed transfer")

    # =========================================================================
    # Settlement
    # =========================================================================

    def settle(self, state_before: AuctionState) -> Optional[AuctionError]:
        """
        Pay the highest bid to the operator.

        Must be called right after the auction was marked ended.
        ``state_before`` is the state prior to that, restored if the
        payment fails so the auction is not left ended-but-unpaid.
        """
        ledger_snapshot = self.ledger.snapshot()
        amount = self.state.highest_bid

        if amount > 0:
            error = self._pay(self.operator, amount, ledger_snapshot, state_before)
            if error is not None:
                logger.warning(f"Settlement of {amount} to operator failed, auction not ended")
                return error
            logger.info(f"Settled {amount} to operator {self.operator}")

        notify(
            self.observers,
            AuctionEnded(winning_bidder=self.state.winning_bidder, highest_bid=amount),
        )
        return None

    # =========================================================================
    # Deposit Release
    # =========================================================================

    def _release(self, identity: str, amount: int) -> Tuple[int, Optional[AuctionError]]:
        """Debit ``amount`` from a deposit and transfer it out."""
        ledger_snapshot = self.ledger.snapshot()
        state_snapshot = self.state.copy()

        ok, error = self.ledger.debit_deposit(identity, amount)
        if not ok:
            return 0, error

        if amount > 0:
            error = self._pay(identity, amount, ledger_snapshot, state_snapshot)
            if error is not None:
                return 0, error

        remaining = self.ledger.deposit_of(identity)
        logger.info(f"Released {amount} to {identity}, {remaining} remaining")
        notify(self.observers, FundsReleased(recipient=identity, amount=amount, remaining=remaining))
        return amount, None

    def withdraw_deposit(self, identity: str) -> Tuple[int, Optional[AuctionError]]:
        """
        Withdraw a participant's whole deposit.

        Returns:
            (amount_transferred, error)
        """
        balance = self.ledger.deposit_of(identity)
        if balance == 0:
            return 0, fail(ErrorKind.NO_DEPOSIT, f"{identity} has no deposit")
        return self._release(identity, balance)

    def refund_percentage(self, identity: str, percentage: int) -> Tuple[int, Optional[AuctionError]]:
        """
        Refund ``percentage`` percent of a participant's deposit (rounded down).

        Repeated calls work on the shrinking remainder.

        Returns:
            (amount_transferred, error)
        """
        valid, err = validate_percentage(percentage)
        if not valid:
            return 0, fail(ErrorKind.INVALID_PERCENTAGE, err)

        balance = self.ledger.deposit_of(identity)
        if balance == 0:
            return 0, fail(ErrorKind.NO_DEPOSIT, f"{identity} has no deposit")

        amount = balance * percentage // 100
        return self._release(identity, amount)


__all__ = [
    "Settlement",
]
