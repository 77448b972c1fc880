# MIT License © 2025 Motohiro Suzuki
"""
mlscrypto/aead.py

AEAD backends (AES-128-GCM, AES-256-GCM, ChaCha20-Poly1305).

Key and nonce lengths are checked before a cipher object is built, so a
length error never reaches the primitive. Ciphertext is payload || tag and
is treated as one opaque unit.

Nonce uniqueness per key is the caller's obligation when the caller
supplies the nonce.
"""

from __future__ import annotations

from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from mlscrypto.ciphersuites import AEAD_NONCE_LEN, AEAD_TAG_LEN, AeadKind, aead_key_len
from mlscrypto.errors import AuthenticationFailed, InvalidKeyMaterial


class AEADBackend:
    name: str
    kind: AeadKind
    key_len: int
    nonce_len: int = AEAD_NONCE_LEN
    tag_len: int = AEAD_TAG_LEN

    def _cipher(self, key: bytes):
        raise NotImplementedError

    def _check(self, key: bytes, nonce: bytes) -> None:
        if len(key) != self.key_len:
            raise InvalidKeyMaterial(f"{self.name}: key must be {self.key_len} bytes, got {len(key)}")
        if len(nonce) != self.nonce_len:
            raise InvalidKeyMaterial(f"{self.name}: nonce must be {self.nonce_len} bytes, got {len(nonce)}")

    def seal(self, key: bytes, nonce: bytes, aad: bytes, plaintext: bytes) -> bytes:
        self._check(key, nonce)
        return self._cipher(bytes(key)).encrypt(bytes(nonce), plaintext, aad)

    def open(self, key: bytes, nonce: bytes, aad: bytes, ciphertext: bytes) -> bytes:
        self._check(key, nonce)
        try:
            return self._cipher(bytes(key)).decrypt(bytes(nonce), ciphertext, aad)
        except InvalidTag as e:
            raise AuthenticationFailed(f"{self.name}: authentication failed") from e


class _AESGCM(AEADBackend):
    def __init__(self, kind: AeadKind) -> None:
        self.kind = kind
        self.key_len = aead_key_len(kind)
        self.name = f"aes-{self.key_len * 8}-gcm"

    def _cipher(self, key: bytes):
        return AESGCM(key)


class _ChaCha20Poly1305(AEADBackend):
    def __init__(self) -> None:
        self.kind = AeadKind.CHACHA20_POLY1305
        self.key_len = aead_key_len(self.kind)
        self.name = "chacha20-poly1305"

    def _cipher(self, key: bytes):
        return ChaCha20Poly1305(key)


@lru_cache(maxsize=None)
def get_aead_backend(kind: AeadKind) -> AEADBackend:
    kind = AeadKind(kind)
    if kind in (AeadKind.AES_128_GCM, AeadKind.AES_256_GCM):
        return _AESGCM(kind)
    return _ChaCha20Poly1305()
