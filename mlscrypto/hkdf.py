# MIT License © 2025 Motohiro Suzuki
"""
mlscrypto/hkdf.py

Hash / HMAC / HKDF (RFC 5869) per ciphersuite hash.

HKDF-Expand is bounded at 255 * HashLen: anything longer raises
InvalidLength here instead of trusting the caller.
"""

from __future__ import annotations

import hashlib
import hmac
from functools import lru_cache

from mlscrypto.ciphersuites import HashKind, hash_len
from mlscrypto.errors import InvalidLength

HPKE_VERSION_LABEL = b"HPKE-v1"


def i2osp(x: int, n: int) -> bytes:
    if x < 0 or x >= 1 << (8 * n):
        raise ValueError(f"i2osp: {x} does not fit in {n} bytes")
    return x.to_bytes(n, "big")


class HashBackend:
    def __init__(self, kind: HashKind) -> None:
        self.kind = kind
        self.name = kind.value
        self.digest_size = hash_len(kind)

    def _new(self, data: bytes = b""):
        return hashlib.new(self.name, data)

    def hash(self, data: bytes) -> bytes:
        return self._new(data).digest()

    def hmac(self, key: bytes, data: bytes) -> bytes:
        return hmac.new(bytes(key), data, self.name).digest()

    def hmac_verify(self, key: bytes, data: bytes, tag: bytes) -> bool:
        return hmac.compare_digest(self.hmac(key, data), bytes(tag))

    def max_expand_len(self) -> int:
        return 255 * self.digest_size

    def hkdf_extract(self, salt: bytes, ikm: bytes) -> bytes:
        if not salt:
            salt = b"\x00" * self.digest_size
        return self.hmac(salt, ikm)

    def hkdf_expand(self, prk: bytes, info: bytes, length: int) -> bytes:
        if length < 0 or length > self.max_expand_len():
            raise InvalidLength(
                f"hkdf_expand length {length} outside 0..{self.max_expand_len()} for {self.name}"
            )
        if length == 0:
            return b""

        t = b""
        okm = b""
        c = 1
        while len(okm) < length:
            t = self.hmac(prk, t + info + bytes([c]))
            okm += t
            c += 1
        return okm[:length]

    # RFC 9180 §4 labeled forms, suite_id selects KEM vs HPKE context.
    def labeled_extract(self, suite_id: bytes, salt: bytes, label: bytes, ikm: bytes) -> bytes:
        return self.hkdf_extract(salt, HPKE_VERSION_LABEL + suite_id + label + ikm)

    def labeled_expand(self, suite_id: bytes, prk: bytes, label: bytes, info: bytes, length: int) -> bytes:
        labeled_info = i2osp(length, 2) + HPKE_VERSION_LABEL + suite_id + label + info
        return self.hkdf_expand(prk, labeled_info, length)


@lru_cache(maxsize=None)
def get_hash_backend(kind: HashKind) -> HashBackend:
    return HashBackend(HashKind(kind))
