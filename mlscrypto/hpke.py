# MIT License © 2025 Motohiro Suzuki
"""
mlscrypto/hpke.py

HPKE base mode (RFC 9180, mode_base = 0x00) composed from the DHKEM,
HKDF and AEAD backends.

Context rules:
- nonce = base_nonce XOR I2OSP(seq, Nn)
- seq advances only after a successful seal/open, so a ciphertext
  replayed at another position fails authentication
- seq never wraps: at 2^(8*Nn) - 1 the context is exhausted
- sender contexts only seal, receiver contexts only open
- close() wipes key, base nonce and exporter secret
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from functools import lru_cache

from mlscrypto.aead import AEADBackend, get_aead_backend
from mlscrypto.ciphersuites import KDF_HASH, AeadKind, KdfKind, KemKind
from mlscrypto.errors import ContextExhausted, InvalidLength, WrongContextRole
from mlscrypto.hkdf import HashBackend, get_hash_backend, i2osp
from mlscrypto.kem import KemBackend, get_kem_backend
from mlscrypto.rng import RandomSource
from mlscrypto.zeroize import SecretBox, wipe_bytearray

logger = logging.getLogger(__name__)

MODE_BASE = 0x00


class HpkeRole(str, Enum):
    SENDER = "sender"
    RECEIVER = "receiver"


class HpkeContext:
    """
    One HPKE session bound to one encapsulated key.

    Usable as a context manager; leaving the block closes it.
    """

    def __init__(
        self,
        *,
        role: HpkeRole,
        aead: AEADBackend,
        kdf: HashBackend,
        suite_id: bytes,
        key: bytes,
        base_nonce: bytes,
        exporter_secret: bytes,
    ) -> None:
        self.role = role
        self._aead = aead
        self._kdf = kdf
        self._suite_id = suite_id
        self._key = SecretBox(key)
        self._base_nonce = SecretBox(base_nonce)
        self._exporter_secret = SecretBox(exporter_secret)
        self._seq = 0
        self._max_seq = (1 << (8 * aead.nonce_len)) - 1
        self._closed = False
        self._lock = threading.Lock()

    @property
    def seq(self) -> int:
        return self._seq

    @property
    def closed(self) -> bool:
        return self._closed

    def _compute_nonce(self) -> bytes:
        seq_bytes = i2osp(self._seq, self._aead.nonce_len)
        return bytes(a ^ b for a, b in zip(self._base_nonce.copy(), seq_bytes))

    def _check_usable(self, role: HpkeRole) -> None:
        if self._closed:
            raise ContextExhausted("hpke context is closed")
        if self.role != role:
            raise WrongContextRole(f"{self.role.value} context cannot be used by the {role.value}")
        if self._seq >= self._max_seq:
            raise ContextExhausted("hpke sequence number exhausted")

    def seal(self, aad: bytes, plaintext: bytes) -> bytes:
        with self._lock:
            self._check_usable(HpkeRole.SENDER)
            ct = self._aead.seal(self._key.copy(), self._compute_nonce(), aad, plaintext)
            self._seq += 1
            return ct

    def open(self, aad: bytes, ciphertext: bytes) -> bytes:
        with self._lock:
            self._check_usable(HpkeRole.RECEIVER)
            pt = self._aead.open(self._key.copy(), self._compute_nonce(), aad, ciphertext)
            self._seq += 1
            return pt

    def export(self, exporter_context: bytes, length: int) -> bytes:
        if length < 0 or length > 255 * self._kdf.digest_size:
            raise InvalidLength(f"export length {length} outside 0..{255 * self._kdf.digest_size}")
        with self._lock:
            if self._closed:
                raise ContextExhausted("hpke context is closed")
            secret = self._exporter_secret.copy()
        try:
            return self._kdf.labeled_expand(self._suite_id, secret, b"sec", exporter_context, length)
        finally:
            wipe_bytearray(secret)

    def close(self) -> None:
        with self._lock:
            self._key.wipe()
            self._base_nonce.wipe()
            self._exporter_secret.wipe()
            self._closed = True

    def __enter__(self) -> "HpkeContext":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class HpkeSuite:
    def __init__(self, kem: KemKind, kdf: KdfKind, aead: AeadKind) -> None:
        self.kem: KemBackend = get_kem_backend(kem)
        self.kdf: HashBackend = get_hash_backend(KDF_HASH[KdfKind(kdf)])
        self.aead: AEADBackend = get_aead_backend(aead)
        self.suite_id = b"HPKE" + i2osp(int(kem), 2) + i2osp(int(kdf), 2) + i2osp(int(aead), 2)
        self.name = f"{self.kem.name}/{self.kdf.name}/{self.aead.name}"

    def _key_schedule(self, role: HpkeRole, shared_secret: bytes, info: bytes) -> HpkeContext:
        # base mode: psk and psk_id are empty
        sid = self.suite_id
        psk_id_hash = self.kdf.labeled_extract(sid, b"", b"psk_id_hash", b"")
        info_hash = self.kdf.labeled_extract(sid, b"", b"info_hash", info)
        ks_context = bytes([MODE_BASE]) + psk_id_hash + info_hash

        secret = self.kdf.labeled_extract(sid, shared_secret, b"secret", b"")
        key = self.kdf.labeled_expand(sid, secret, b"key", ks_context, self.aead.key_len)
        base_nonce = self.kdf.labeled_expand(sid, secret, b"base_nonce", ks_context, self.aead.nonce_len)
        exporter_secret = self.kdf.labeled_expand(sid, secret, b"exp", ks_context, self.kdf.digest_size)

        return HpkeContext(
            role=role,
            aead=self.aead,
            kdf=self.kdf,
            suite_id=sid,
            key=key,
            base_nonce=base_nonce,
            exporter_secret=exporter_secret,
        )

    def setup_sender(self, pk_r: bytes, info: bytes, rng: RandomSource) -> tuple[bytes, HpkeContext]:
        r = self.kem.encap(pk_r, rng)
        logger.debug("hpke sender setup suite=%s", self.name)
        return r.enc, self._key_schedule(HpkeRole.SENDER, r.shared_secret, info)

    def setup_receiver(self, enc: bytes, sk_r: bytes, info: bytes) -> HpkeContext:
        shared_secret = self.kem.decap(enc, sk_r)
        logger.debug("hpke receiver setup suite=%s", self.name)
        return self._key_schedule(HpkeRole.RECEIVER, shared_secret, info)

    def seal(self, pk_r: bytes, info: bytes, aad: bytes, plaintext: bytes, rng: RandomSource) -> tuple[bytes, bytes]:
        enc, ctx = self.setup_sender(pk_r, info, rng)
        with ctx:
            return enc, ctx.seal(aad, plaintext)

    def open(self, enc: bytes, sk_r: bytes, info: bytes, aad: bytes, ciphertext: bytes) -> bytes:
        with self.setup_receiver(enc, sk_r, info) as ctx:
            return ctx.open(aad, ciphertext)


@lru_cache(maxsize=None)
def get_hpke_suite(kem: KemKind, kdf: KdfKind, aead: AeadKind) -> HpkeSuite:
    return HpkeSuite(kem, kdf, aead)
