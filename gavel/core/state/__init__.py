"""Participant ledger: bids, deposits, roster and funds counters"""
from gavel.core.state.ledger import Bid, BidKind, Ledger, LedgerSnapshot

__all__ = [
    "Bid",
    "BidKind",
    "Ledger",
    "LedgerSnapshot",
]
