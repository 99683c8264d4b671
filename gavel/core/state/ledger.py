"""
Ledger - bid and deposit bookkeeping for a single auction.

Conceptual Background:
---------------------
The Ledger holds everything the auction knows about its participants:

1. **Bids**: at most one OPEN and one SEALED bid per identity. A later
   submission of the same kind overwrites the recorded amount.
2. **Deposits**: funds a participant sent outside of a bid, kept as a
   per-identity non-negative balance.
3. **Roster**: identities that have placed at least one bid, in the order
   they first bid. Settlement and reporting iterate this list instead of
   scanning balances.
4. **Funds counters**: total value received and total value paid out, so
   the held balance can always be checked against the deposits owed.

The Ledger has no notion of time or auction phase. Deciding whether a
mutation is allowed is the caller's job.

Snapshot:
--------
``snapshot()`` captures the full state and ``restore()`` puts it back.
The engine uses this to undo a mutation when the external transfer that
follows it fails.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from gavel.core.errors import AuctionError, ErrorKind, fail
from gavel.utils.logger import get_logger

logger = get_logger("ledger")


# =============================================================================
# Bid Records
# =============================================================================


class BidKind(Enum):
    """Kind of a recorded bid."""
    OPEN = "open"
    SEALED = "sealed"


@dataclass(frozen=True)
class Bid:
    """A recorded bid for one participant."""
    bidder: str
    kind: BidKind
    amount: int

    @property
    def sealed(self) -> bool:
        return self.kind is BidKind.SEALED


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Copy of the full ledger state.

    Restoring a snapshot undoes every mutation made after it was taken.
    """
    bids: Dict[Tuple[str, BidKind], Bid]
    deposits: Dict[str, int]
    roster: Tuple[str, ...]
    total_received: int
    total_escrowed: int
    total_paid_out: int


# =============================================================================
# Ledger
# =============================================================================


class Ledger:
    """
    Mapping of participants to bids and deposit balances.

    Attributes:
        bids: (identity, kind) -> Bid
        deposits: identity -> deposit balance (zero balances are removed)
        total_received: all value ever received (bids and deposits)
        total_escrowed: the part of total_received that arrived with bids
        total_paid_out: all value ever transferred out
    """

    def __init__(self):
        self.bids: Dict[Tuple[str, BidKind], Bid] = {}
        self.deposits: Dict[str, int] = {}
        self._roster: List[str] = []
        self._roster_index = set()
        self.total_received = 0
        self.total_escrowed = 0
        self.total_paid_out = 0

    # =========================================================================
    # Bids
    # =========================================================================

    def record_bid(self, identity: str, kind: BidKind, amount: int) -> Bid:
        """
        Record (or overwrite) a participant's bid of the given kind.

        Returns:
            The recorded Bid
        """
        bid = Bid(bidder=identity, kind=kind, amount=amount)
        previous = self.bids.get((identity, kind))
        self.bids[(identity, kind)] = bid

        if identity not in self._roster_index:
            self._roster_index.add(identity)
            self._roster.append(identity)

        if previous is not None:
            logger.debug(f"{kind.value} bid of {identity} overwritten: {previous.amount} -> {amount}")
        return bid

    def bid_of(self, identity: str, kind: BidKind = BidKind.OPEN) -> Optional[Bid]:
        """Get a participant's recorded bid of one kind."""
        return self.bids.get((identity, kind))

    def bids_of(self, identity: str) -> List[Bid]:
        """Get all recorded bids for a participant (open first)."""
        return [
            self.bids[(identity, kind)]
            for kind in BidKind
            if (identity, kind) in self.bids
        ]

    def has_bids(self) -> bool:
        return bool(self.bids)

    def is_bidder(self, identity: str) -> bool:
        return identity in self._roster_index

    def bidders(self) -> List[str]:
        """Identities that have placed a bid, in first-bid order."""
        return list(self._roster)

    @property
    def bidder_count(self) -> int:
        return len(self._roster)

    # =========================================================================
    # Deposits
    # =========================================================================

    def credit_deposit(self, identity: str, amount: int) -> int:
        """
        Credit a participant's deposit balance.

        Returns:
            The new balance
        """
        balance = self.deposits.get(identity, 0) + amount
        if balance:
            self.deposits[identity] = balance
        return balance

    def debit_deposit(self, identity: str, amount: int) -> Tuple[bool, Optional[AuctionError]]:
        """
        Debit a participant's deposit balance.

        Fails without touching the balance if it would go negative.

        Returns:
            (success, error)
        """
        balance = self.deposits.get(identity, 0)
        if amount > balance:
            return False, fail(
                ErrorKind.INSUFFICIENT_BALANCE,
                f"balance {balance} is below requested {amount}",
            )

        remaining = balance - amount
        if remaining:
            self.deposits[identity] = remaining
        else:
            self.deposits.pop(identity, None)
        return True, None

    def deposit_of(self, identity: str) -> int:
        """Deposit balance for a participant (0 if unknown)."""
        return self.deposits.get(identity, 0)

    def total_deposits(self) -> int:
        return sum(self.deposits.values())

    # =========================================================================
    # Funds Counters
    # =========================================================================

    def record_received(self, amount: int, escrow: bool = False) -> None:
        """Count incoming value; bid funds are also counted as escrow."""
        self.total_received += amount
        if escrow:
            self.total_escrowed += amount

    def record_paid_out(self, amount: int) -> None:
        self.total_paid_out += amount

    @property
    def held_funds(self) -> int:
        """Value currently held by the engine."""
        return self.total_received - self.total_paid_out

    def is_solvent(self) -> bool:
        """Check that the held value covers every deposit owed."""
        return self.total_deposits() <= self.held_funds

    # =========================================================================
    # Snapshot
    # =========================================================================

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            bids=dict(self.bids),
            deposits=dict(self.deposits),
            roster=tuple(self._roster),
            total_received=self.total_received,
            total_escrowed=self.total_escrowed,
            total_paid_out=self.total_paid_out,
        )

    def restore(self, snapshot: LedgerSnapshot) -> None:
        """Put the ledger back exactly as it was when ``snapshot`` was taken."""
        self.bids = dict(snapshot.bids)
        self.deposits = dict(snapshot.deposits)
        self._roster = list(snapshot.roster)
        self._roster_index = set(snapshot.roster)
        self.total_received = snapshot.total_received
        self.total_escrowed = snapshot.total_escrowed
        self.total_paid_out = snapshot.total_paid_out

    # =========================================================================
    # Utility
    # =========================================================================

    def __repr__(self) -> str:
        return (
            f"Ledger(bidders={len(self._roster)}, depositors={len(self.deposits)}, "
            f"held={self.held_funds})"
        )

    def stats(self) -> dict:
        """Get ledger statistics."""
        return {
            "bidder_count": len(self._roster),
            "open_bids": sum(1 for k in self.bids if k[1] is BidKind.OPEN),
            "sealed_bids": sum(1 for k in self.bids if k[1] is BidKind.SEALED),
            "depositor_count": len(self.deposits),
            "total_deposits": self.total_deposits(),
            "total_received": self.total_received,
            "total_escrowed": self.total_escrowed,
            "total_paid_out": self.total_paid_out,
            "held_funds": self.held_funds,
        }
