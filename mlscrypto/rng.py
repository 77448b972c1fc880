# MIT License © 2025 Motohiro Suzuki
"""
mlscrypto/rng.py

CSPRNG adapter.

The provider constructs exactly one OsRandom and passes it down
explicitly (key store, HPKE sender setup). There is no module-level
generator and no non-cryptographic fallback: if the OS entropy source
is unavailable we fail with EntropyUnavailable.
"""

from __future__ import annotations

import logging
import os

from mlscrypto.errors import EntropyUnavailable, InvalidLength

logger = logging.getLogger(__name__)


class RandomSource:
    name: str

    def random_bytes(self, length: int) -> bytes:
        raise NotImplementedError


class OsRandom(RandomSource):
    def __init__(self) -> None:
        self.name = "os-urandom"

    def random_bytes(self, length: int) -> bytes:
        if length < 0:
            raise InvalidLength(f"random length must be >= 0, got {length}")
        if length == 0:
            return b""
        try:
            return os.urandom(length)
        except (NotImplementedError, OSError) as e:
            logger.error("OS entropy source unavailable: %s", e)
            raise EntropyUnavailable("OS entropy source unavailable") from e
