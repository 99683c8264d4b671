"""
Gavel Auction Module.

This module provides the single-item auction:
- Phase model and clock-derived phase
- Open and sealed bid admission
- Settlement and deposit withdrawal
- The AuctionEngine tying them together
"""

from gavel.core.auction.phases import (
    Phase,
    AuctionSchedule,
    AuctionState,
    effective_phase,
    is_endable,
)

from gavel.core.auction.admission import (
    BidAdmission,
    DEFAULT_MAX_BIDDERS,
)

from gavel.core.auction.settlement import Settlement

from gavel.core.auction.engine import (
    AuctionEngine,
    Winner,
)

__all__ = [
    # Phases
    "Phase",
    "AuctionSchedule",
    "AuctionState",
    "effective_phase",
    "is_endable",
    # Admission
    "BidAdmission",
    "DEFAULT_MAX_BIDDERS",
    # Settlement
    "Settlement",
    # Engine
    "AuctionEngine",
    "Winner",
]
