# MIT License © 2025 Motohiro Suzuki
"""
mlskeystore/store.py

Handle-based key store.

Per key:  Absent -> Generated/Imported -> Stored -> (Retrieved)* -> Deleted

- Callers hold KeyHandle capabilities, never raw bytes. read() lends a
  bytearray copy for the duration of a `with` block and wipes it after.
- Every identifier has its own lock; calls on different identifiers
  never wait on each other. A lock lives only while some call holds or
  waits on it. Entries are fully built before a single dict assignment
  publishes them.
- Versions come from one store-wide counter that only moves forward, so
  a handle from before a delete or a re-store stays dead without keeping
  any per-identifier history.
- Backend record:
    u32 version | u8 purpose | u16 suite | u16 len(pub) | pub | priv
"""

from __future__ import annotations

import logging
import struct
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from mlscrypto.algorithms import get_suite
from mlscrypto.ciphersuites import Ciphersuite, KeyPurpose, to_ciphersuite
from mlscrypto.errors import InvalidKeyMaterial, KeyNotFound
from mlscrypto.rng import OsRandom, RandomSource
from mlscrypto.zeroize import SecretBox, wipe_bytearray
from mlskeystore.base import StorageBackend
from mlskeystore.memory import MemoryBackend

logger = logging.getLogger(__name__)

_HEADER = struct.Struct("!IBHH")

_PURPOSE_CODE = {
    KeyPurpose.SECRET: 0,
    KeyPurpose.SIGNATURE: 1,
    KeyPurpose.KEM: 2,
}
_CODE_PURPOSE = {v: k for k, v in _PURPOSE_CODE.items()}


@dataclass(frozen=True)
class KeyHandle:
    identifier: bytes
    purpose: KeyPurpose
    ciphersuite: Ciphersuite
    version: int

    def __repr__(self) -> str:
        return (
            f"KeyHandle(identifier={self.identifier!r}, purpose={self.purpose.value}, "
            f"ciphersuite={int(self.ciphersuite):#06x}, version={self.version})"
        )


class _Entry:
    __slots__ = ("handle", "secret", "public")

    def __init__(self, handle: KeyHandle, secret: SecretBox, public: bytes) -> None:
        self.handle = handle
        self.secret = secret
        self.public = public


class _IdentLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


def _normalize_identifier(identifier: bytes | str) -> bytes:
    if isinstance(identifier, str):
        identifier = identifier.encode("utf-8")
    if not isinstance(identifier, (bytes, bytearray)):
        raise TypeError(f"key identifier must be bytes or str, got {type(identifier).__name__}")
    if not identifier:
        raise ValueError("key identifier must be non-empty")
    return bytes(identifier)


def encode_record(handle: KeyHandle, private: bytes, public: bytes) -> bytes:
    header = _HEADER.pack(handle.version, _PURPOSE_CODE[handle.purpose], int(handle.ciphersuite), len(public))
    return header + public + bytes(private)


def decode_record(identifier: bytes, record: bytes) -> tuple[KeyHandle, bytes, bytes]:
    if len(record) < _HEADER.size:
        raise InvalidKeyMaterial("corrupt key record: short header")
    version, purpose_code, suite, pub_len = _HEADER.unpack_from(record)
    if purpose_code not in _CODE_PURPOSE:
        raise InvalidKeyMaterial(f"corrupt key record: purpose code {purpose_code}")
    body = record[_HEADER.size:]
    if len(body) <= pub_len:
        raise InvalidKeyMaterial("corrupt key record: truncated body")
    handle = KeyHandle(
        identifier=identifier,
        purpose=_CODE_PURPOSE[purpose_code],
        ciphersuite=to_ciphersuite(suite),
        version=version,
    )
    return handle, body[pub_len:], body[:pub_len]


class KeyStore:
    def __init__(self, backend: Optional[StorageBackend] = None, rng: Optional[RandomSource] = None) -> None:
        self.backend = backend if backend is not None else MemoryBackend()
        self.rng = rng if rng is not None else OsRandom()
        self._table: dict[bytes, _Entry] = {}
        self._locks: dict[bytes, _IdentLock] = {}
        # guards _locks and _last_version only; never held while a key is built
        self._registry = threading.Lock()
        self._last_version = 0

    @contextmanager
    def _lock_for(self, ident: bytes) -> Iterator[None]:
        with self._registry:
            slot = self._locks.get(ident)
            if slot is None:
                slot = self._locks[ident] = _IdentLock()
            slot.users += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._registry:
                slot.users -= 1
                if slot.users == 0:
                    del self._locks[ident]

    def _next_version(self, floor: int = 0) -> int:
        with self._registry:
            self._last_version = max(self._last_version, floor) + 1
            return self._last_version

    def _seen_version(self, version: int) -> None:
        with self._registry:
            self._last_version = max(self._last_version, version)

    # --- lifecycle ---
    def generate(
        self,
        ciphersuite: Ciphersuite | int,
        purpose: KeyPurpose,
        identifier: bytes | str | None = None,
    ) -> KeyHandle:
        suite = get_suite(ciphersuite)
        purpose = KeyPurpose(purpose)
        if identifier is None:
            ident = self.rng.random_bytes(16).hex().encode("ascii")
        else:
            ident = _normalize_identifier(identifier)

        private, public = suite.generate_key_material(purpose, self.rng)
        handle = self._install(ident, suite.ciphersuite, purpose, private, public)
        logger.debug("generated key %r", handle)
        return handle

    def store(
        self,
        identifier: bytes | str,
        material: bytes,
        *,
        ciphersuite: Ciphersuite | int,
        purpose: KeyPurpose,
    ) -> KeyHandle:
        suite = get_suite(ciphersuite)
        purpose = KeyPurpose(purpose)
        ident = _normalize_identifier(identifier)
        public = suite.public_for(purpose, bytes(material))
        handle = self._install(ident, suite.ciphersuite, purpose, material, public)
        logger.debug("stored key %r", handle)
        return handle

    def _install(
        self,
        ident: bytes,
        ciphersuite: Ciphersuite,
        purpose: KeyPurpose,
        private: bytes,
        public: bytes,
    ) -> KeyHandle:
        with self._lock_for(ident):
            current = self._load(ident)
            version = self._next_version(current.handle.version if current is not None else 0)
            handle = KeyHandle(identifier=ident, purpose=purpose, ciphersuite=ciphersuite, version=version)
            entry = _Entry(handle, SecretBox(private), bytes(public))

            # backend first: if it fails nothing in the table has changed
            self.backend.put(ident, encode_record(handle, private, public))

            self._table[ident] = entry
            if current is not None:
                current.secret.wipe()
            return handle

    def _load(self, ident: bytes) -> Optional[_Entry]:
        # caller holds the identifier lock
        entry = self._table.get(ident)
        if entry is None:
            record = self.backend.get(ident)
            if record is not None:
                h, private, public = decode_record(ident, record)
                self._seen_version(h.version)
                entry = _Entry(h, SecretBox(private), public)
                self._table[ident] = entry
        return entry

    def _lookup(self, handle: KeyHandle) -> Optional[_Entry]:
        entry = self._load(handle.identifier)
        if entry is None or entry.handle != handle:
            return None
        return entry

    def _entry_for(self, handle: KeyHandle) -> _Entry:
        entry = self._lookup(handle)
        if entry is None:
            raise KeyNotFound(f"no live key for {handle!r}")
        return entry

    @contextmanager
    def read(self, handle: KeyHandle) -> Iterator[bytearray]:
        """Borrow the private material; the copy is wiped when the block exits."""
        with self._lock_for(handle.identifier):
            buf = self._entry_for(handle).secret.copy()
        try:
            yield buf
        finally:
            wipe_bytearray(buf)

    def export(self, handle: KeyHandle) -> bytes:
        with self._lock_for(handle.identifier):
            material = self._entry_for(handle).secret.bytes()
        logger.debug("exported key %r", handle)
        return material

    def public_key(self, handle: KeyHandle) -> bytes:
        if handle.purpose == KeyPurpose.SECRET:
            raise InvalidKeyMaterial("symmetric secrets have no public key")
        with self._lock_for(handle.identifier):
            return self._entry_for(handle).public

    def contains(self, handle: KeyHandle) -> bool:
        with self._lock_for(handle.identifier):
            return self._lookup(handle) is not None

    def delete(self, handle: KeyHandle) -> None:
        """Wipe and forget the key. Unknown or stale handles are a no-op."""
        ident = handle.identifier
        with self._lock_for(ident):
            entry = self._lookup(handle)
            if entry is None:
                return
            self.backend.delete(ident)
            self._table.pop(ident, None)
            entry.secret.wipe()
        logger.debug("deleted key %r", handle)
