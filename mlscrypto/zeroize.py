# MIT License © 2025 Motohiro Suzuki
"""
mlscrypto/zeroize.py

Best-effort secret zeroization utilities.

Reality check (Python):
- 'bytes' is immutable; the original object cannot be wiped in place.
- 'bytearray' / writable 'memoryview' can be wiped in place.

So every secret the key store or an HPKE context owns lives in a
bytearray (SecretBox), and every borrow handed out is a bytearray copy
wiped when the borrow ends.
"""

from __future__ import annotations


def wipe_bytearray(b: bytearray) -> None:
    """In-place wipe for mutable buffer."""
    for i in range(len(b)):
        b[i] = 0


class SecretBox:
    """
    Holds secret bytes in a bytearray so they can be wiped in place.
    """
    __slots__ = ("_buf",)

    def __init__(self, data: bytes | bytearray) -> None:
        self._buf = bytearray(data)

    def copy(self) -> bytearray:
        return bytearray(self._buf)

    def bytes(self) -> bytes:
        return bytes(self._buf)

    def wipe(self) -> None:
        wipe_bytearray(self._buf)

    def is_wiped(self) -> bool:
        return not any(self._buf)

    def __len__(self) -> int:
        return len(self._buf)
