"""
Funds Transfer - the boundary through which the engine pays out value.

The engine never moves value itself. Settlement and deposit withdrawal
call a ``FundsTransfer`` backend, which either completes the transfer or
reports failure. A backend may report failure by returning
``(False, reason)`` or by raising ``TransferError``.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Set, Tuple

from gavel.core.errors import TransferError
from gavel.utils.logger import get_logger

logger = get_logger("funds")


class FundsTransfer(Protocol):
    """Capability to send value out of the engine."""

    def transfer(self, to: str, amount: int) -> Tuple[bool, str]:
        ...


@dataclass(frozen=True)
class Payout:
    """A completed outgoing transfer."""
    recipient: str
    amount: int


class InMemoryFunds:
    """
    Funds backend that records payouts in memory.

    Used by tests and the CLI. Failures can be injected per recipient or
    for the next N transfers, and ``on_transfer`` runs before a transfer
    completes, which is how a callback into the engine is simulated.
    """

    def __init__(self, on_transfer: Optional[Callable[[str, int], None]] = None):
        self.payouts: List[Payout] = []
        self.failing_recipients: Set[str] = set()
        self.fail_next = 0
        self.raise_errors = False
        self.on_transfer = on_transfer

    def transfer(self, to: str, amount: int) -> Tuple[bool, str]:
        if self.on_transfer is not None:
            self.on_transfer(to, amount)

        if self.fail_next > 0 or to in self.failing_recipients:
            if self.fail_next > 0:
                self.fail_next -= 1
            reason = f"transfer of {amount} to {to} rejected"
            if self.raise_errors:
                raise TransferError(reason)
            return False, reason

        self.payouts.append(Payout(recipient=to, amount=amount))
        return True, ""

    def paid_to(self, recipient: str) -> int:
        """Total value paid to one recipient."""
        return sum(p.amount for p in self.payouts if p.recipient == recipient)

    @property
    def total_paid(self) -> int:
        return sum(p.amount for p in self.payouts)


def send(backend: FundsTransfer, to: str, amount: int) -> Tuple[bool, str]:
    """
    Invoke a backend, folding a raised TransferError into a failed result.

    Returns:
        (success, error_message)
    """
    try:
        ok, reason = backend.transfer(to, amount)
    except TransferError as e:
        ok, reason = False, str(e) or "transfer error"

    if not ok:
        logger.warning(f"Transfer of {amount} to {to} failed: {reason}")
    return ok, reason


__all__ = [
    "FundsTransfer",
    "Payout",
    "InMemoryFunds",
    "send",
]
