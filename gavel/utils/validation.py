"""
Input Validation - sanity checks for values crossing the engine boundary.

Amounts, timestamps and identities arrive from callers the engine does not
control. These helpers reject wrong types and out-of-range values before
any guard logic runs.
"""

from typing import Any, Tuple

# =============================================================================
# Constants
# =============================================================================

MIN_AMOUNT = 0
MAX_AMOUNT = 2**256 - 1
MIN_TIMESTAMP = 0
MAX_TIMESTAMP = 2**64 - 1
MAX_IDENTITY_LENGTH = 256
MIN_PERCENTAGE = 1
MAX_PERCENTAGE = 100


# =============================================================================
# Validation Functions
# =============================================================================


def validate_int_type(value: Any, name: str) -> Tuple[bool, str]:
    """Validate that a value is a plain int, with no range check."""
    # bool is an int subclass; True is not an amount
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"
    return True, ""


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    valid, err = validate_int_type(value, name)
    if not valid:
        return False, err

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(amount: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a value amount."""
    return validate_integer(amount, name, MIN_AMOUNT, MAX_AMOUNT)


def validate_timestamp(value: Any, name: str = "timestamp") -> Tuple[bool, str]:
    """Validate a timestamp or duration in seconds."""
    return validate_integer(value, name, MIN_TIMESTAMP, MAX_TIMESTAMP)


def validate_identity(identity: Any, name: str = "identity") -> Tuple[bool, str]:
    """Validate a participant or operator identity."""
    if not isinstance(identity, str):
        return False, f"{name} must be str, got {type(identity).__name__}"

    if not identity:
        return False, f"{name} must not be empty"

    if len(identity) > MAX_IDENTITY_LENGTH:
        return False, f"{name} exceeds max length {MAX_IDENTITY_LENGTH}"

    return True, ""


def validate_percentage(value: Any) -> Tuple[bool, str]:
    """Validate a refund percentage (1..100 inclusive)."""
    return validate_integer(value, "percentage", MIN_PERCENTAGE, MAX_PERCENTAGE)


__all__ = [
    "validate_int_type",
    "validate_integer",
    "validate_amount",
    "validate_timestamp",
    "validate_identity",
    "validate_percentage",
    "MAX_AMOUNT",
    "MAX_TIMESTAMP",
]
