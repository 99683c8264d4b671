"""
Hashing helpers for Gavel.

Keccak-256 is used for the event journal digest so that an audit trail
of an auction can be compared against one recorded elsewhere.
"""

from Crypto.Hash import keccak


def keccak256(data: bytes) -> bytes:
    """Compute Keccak-256 hash (Ethereum-style)."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def encode_uint256(value: int) -> bytes:
    """Big-endian 32-byte encoding of a non-negative integer."""
    return value.to_bytes(32, "big")


def encode_text(value: str) -> bytes:
    """Length-prefixed UTF-8 encoding."""
    raw = value.encode("utf-8")
    return len(raw).to_bytes(2, "big") + raw


EMPTY_DIGEST = bytes(32)
