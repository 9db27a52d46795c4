"""
taxtoken.types.address — raw-bytes addresses and hex helpers.

Addresses are 20 raw bytes. Hex strings (with or without 0x) are accepted at
the edges and normalized here; everything below the public API compares bytes.
"""

from __future__ import annotations

import hashlib
from typing import Final, Union

HexLike = Union[str, bytes, bytearray, memoryview]

ADDRESS_LEN: Final[int] = 20
ZERO_ADDRESS: Final[bytes] = b"\x00" * ADDRESS_LEN


def to_address(v: HexLike) -> bytes:
    """Normalize a hex string or bytes-like value into a 20-byte address."""
    if isinstance(v, (bytes, bytearray, memoryview)):
        out = bytes(v)
    elif isinstance(v, str):
        s = v.strip()
        if s.startswith(("0x", "0X")):
            s = s[2:]
        if len(s) % 2:
            s = "0" + s
        try:
            out = bytes.fromhex(s)
        except ValueError as e:
            raise ValueError(f"invalid hex address: {v!r}") from e
    else:
        raise TypeError(f"expected hex-like address, got {type(v).__name__}")
    if len(out) != ADDRESS_LEN:
        raise ValueError(f"address must be {ADDRESS_LEN} bytes, got {len(out)}")
    return out


def to_hex(addr: bytes) -> str:
    return "0x" + bytes(addr).hex()


def is_zero(addr: bytes) -> bool:
    return not any(addr)


def derive_address(tag: str) -> bytes:
    """
    Stable address from a label (sha3_256, first 20 bytes).
    Used for the token, venue and pool addresses of in-process deployments.
    """
    return hashlib.sha3_256(tag.encode("utf-8")).digest()[:ADDRESS_LEN]


__all__ = [
    "HexLike",
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "to_address",
    "to_hex",
    "is_zero",
    "derive_address",
]
