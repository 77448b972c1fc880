# MIT License © 2025 Motohiro Suzuki
"""
mlsprovider/provider.py

CryptoProvider: the single entry point for the protocol engine.

    engine -> CryptoProvider(suite, op, operands)
           -> registry (resolve, allow-list)
           -> backend for that algorithm family
           -> KeyStore (borrow key material by handle)

The provider owns one CSPRNG handle, created at construction and passed
explicitly to the key store and to HPKE sender setup. All operations are
synchronous; failures surface as CryptoError subclasses, or as
a failed Result through attempt().
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from mlscrypto.algorithms import AlgorithmSuite, get_suite
from mlscrypto.ciphersuites import AlgorithmBundle, Ciphersuite, KeyPurpose, to_ciphersuite
from mlscrypto.errors import (
    AuthenticationFailed,
    DecapsulationFailed,
    InvalidKeyMaterial,
    UnsupportedCiphersuite,
)
from mlscrypto.hpke import HpkeContext
from mlscrypto.rng import OsRandom, RandomSource
from mlskeystore.store import KeyHandle, KeyStore
from mlsprovider.config import ProviderConfig
from mlsprovider.result import Result

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CryptoProvider:
    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        *,
        key_store: Optional[KeyStore] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        self.config = config if config is not None else ProviderConfig()
        if rng is None:
            rng = key_store.rng if key_store is not None else OsRandom()
        self.rng = rng
        self.key_store = key_store if key_store is not None else KeyStore(rng=self.rng)

    # --------------------------
    # registry
    # --------------------------
    @property
    def supported_ciphersuites(self) -> tuple[Ciphersuite, ...]:
        return self.config.ciphersuites

    @property
    def default_ciphersuite(self) -> Ciphersuite:
        return self.config.default_ciphersuite

    def supports(self, suite: Ciphersuite | int) -> bool:
        try:
            return to_ciphersuite(suite) in self.config.ciphersuites
        except UnsupportedCiphersuite:
            return False

    def _suite(self, suite: Ciphersuite | int) -> AlgorithmSuite:
        cs = to_ciphersuite(suite)
        if cs not in self.config.ciphersuites:
            raise UnsupportedCiphersuite(f"ciphersuite {int(cs):#06x} is not enabled")
        return get_suite(cs)

    def resolve(self, suite: Ciphersuite | int) -> AlgorithmBundle:
        return self._suite(suite).bundle

    # --------------------------
    # randomness
    # --------------------------
    def random_bytes(self, length: int) -> bytes:
        return self.rng.random_bytes(length)

    # --------------------------
    # hash / hmac / hkdf
    # --------------------------
    def hash(self, suite: Ciphersuite | int, data: bytes) -> bytes:
        return self._suite(suite).hash.hash(data)

    def hmac(self, suite: Ciphersuite | int, key: bytes, data: bytes) -> bytes:
        return self._suite(suite).hash.hmac(key, data)

    def hmac_verify(self, suite: Ciphersuite | int, key: bytes, data: bytes, tag: bytes) -> bool:
        return self._suite(suite).hash.hmac_verify(key, data, tag)

    def hkdf_extract(self, suite: Ciphersuite | int, salt: bytes, ikm: bytes) -> bytes:
        return self._suite(suite).hash.hkdf_extract(salt, ikm)

    def hkdf_expand(self, suite: Ciphersuite | int, prk: bytes, info: bytes, length: int) -> bytes:
        return self._suite(suite).hash.hkdf_expand(prk, info, length)

    # --------------------------
    # aead
    # --------------------------
    def _with_secret(self, suite: AlgorithmSuite, key: bytes | KeyHandle, fn: Callable[[bytes], T]) -> T:
        if not isinstance(key, KeyHandle):
            return fn(key)
        if key.purpose != KeyPurpose.SECRET:
            raise InvalidKeyMaterial(f"{key!r} is not a symmetric secret")
        if key.ciphersuite != suite.ciphersuite:
            raise InvalidKeyMaterial(f"{key!r} belongs to another ciphersuite")
        with self.key_store.read(key) as k:
            return fn(k)

    def aead_seal(
        self, suite: Ciphersuite | int, key: bytes | KeyHandle, nonce: bytes, aad: bytes, plaintext: bytes
    ) -> bytes:
        s = self._suite(suite)
        return self._with_secret(s, key, lambda k: s.aead.seal(k, nonce, aad, plaintext))

    def aead_open(
        self, suite: Ciphersuite | int, key: bytes | KeyHandle, nonce: bytes, aad: bytes, ciphertext: bytes
    ) -> bytes:
        s = self._suite(suite)
        try:
            return self._with_secret(s, key, lambda k: s.aead.open(k, nonce, aad, ciphertext))
        except AuthenticationFailed:
            logger.warning("aead open failed authentication (suite=%#06x)", int(s.ciphersuite))
            raise

    def aead_seal_random_nonce(
        self, suite: Ciphersuite | int, key: bytes | KeyHandle, aad: bytes, plaintext: bytes
    ) -> tuple[bytes, bytes]:
        """Seal under a fresh CSPRNG nonce; returns (nonce, ciphertext)."""
        s = self._suite(suite)
        nonce = self.rng.random_bytes(s.aead.nonce_len)
        return nonce, self._with_secret(s, key, lambda k: s.aead.seal(k, nonce, aad, plaintext))

    # --------------------------
    # key lifecycle
    # --------------------------
    def generate_key(
        self, suite: Ciphersuite | int, purpose: KeyPurpose, identifier: bytes | str | None = None
    ) -> KeyHandle:
        s = self._suite(suite)
        return self.key_store.generate(s.ciphersuite, purpose, identifier)

    def store_key(
        self, suite: Ciphersuite | int, purpose: KeyPurpose, identifier: bytes | str, material: bytes
    ) -> KeyHandle:
        s = self._suite(suite)
        return self.key_store.store(identifier, material, ciphersuite=s.ciphersuite, purpose=purpose)

    def derive_hpke_key(self, suite: Ciphersuite | int, ikm: bytes, identifier: bytes | str) -> KeyHandle:
        """Deterministic HPKE key pair (RFC 9180 DeriveKeyPair), kept in the key store."""
        s = self._suite(suite)
        sk, _ = s.hpke.kem.derive_keypair(ikm)
        return self.key_store.store(identifier, sk, ciphersuite=s.ciphersuite, purpose=KeyPurpose.KEM)

    def public_key(self, handle: KeyHandle) -> bytes:
        return self.key_store.public_key(handle)

    def export_key(self, handle: KeyHandle) -> bytes:
        return self.key_store.export(handle)

    def delete_key(self, handle: KeyHandle) -> None:
        self.key_store.delete(handle)

    def _checked_handle(self, handle: KeyHandle, purpose: KeyPurpose) -> AlgorithmSuite:
        if handle.purpose != purpose:
            raise InvalidKeyMaterial(f"{handle!r} is not a {purpose.value} key")
        return self._suite(handle.ciphersuite)

    # --------------------------
    # signatures
    # --------------------------
    def sign(self, handle: KeyHandle, message: bytes) -> bytes:
        s = self._checked_handle(handle, KeyPurpose.SIGNATURE)
        with self.key_store.read(handle) as sk:
            return s.sig.sign(sk, message)

    def verify(self, suite: Ciphersuite | int, public_key: bytes, message: bytes, signature: bytes) -> bool:
        return self._suite(suite).sig.verify(public_key, message, signature)

    # --------------------------
    # hpke
    # --------------------------
    def hpke_seal_setup(
        self, suite: Ciphersuite | int, recipient_public_key: bytes, info: bytes
    ) -> tuple[bytes, HpkeContext]:
        return self._suite(suite).hpke.setup_sender(recipient_public_key, info, self.rng)

    def hpke_open_setup(self, encapsulated_key: bytes, handle: KeyHandle, info: bytes) -> HpkeContext:
        s = self._checked_handle(handle, KeyPurpose.KEM)
        try:
            with self.key_store.read(handle) as sk:
                return s.hpke.setup_receiver(encapsulated_key, sk, info)
        except DecapsulationFailed:
            logger.warning("hpke decapsulation failed (suite=%#06x)", int(s.ciphersuite))
            raise

    def hpke_seal(
        self, suite: Ciphersuite | int, recipient_public_key: bytes, info: bytes, aad: bytes, plaintext: bytes
    ) -> tuple[bytes, bytes]:
        return self._suite(suite).hpke.seal(recipient_public_key, info, aad, plaintext, self.rng)

    def hpke_open(self, handle: KeyHandle, encapsulated_key: bytes, info: bytes, aad: bytes, ciphertext: bytes) -> bytes:
        with self.hpke_open_setup(encapsulated_key, handle, info) as ctx:
            try:
                return ctx.open(aad, ciphertext)
            except AuthenticationFailed:
                logger.warning("hpke open failed authentication (suite=%#06x)", int(handle.ciphersuite))
                raise

    # --------------------------
    # typed results
    # --------------------------
    def attempt(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Result[T]:
        """Run one provider operation and fold a CryptoError into a failed Result."""
        return Result.from_call(getattr(fn, "__name__", repr(fn)), fn, *args, **kwargs)
