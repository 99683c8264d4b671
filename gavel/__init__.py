"""
Gavel - single-item auction settlement engine.

Provides:
- Deposit and bid ledger
- Open and sealed bid admission
- Clock-driven auction state machine
- Settlement and deposit withdrawal against an external funds backend
"""

__version__ = "0.1.0"
