# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations


class StorageBackend:
    """
    Persistence medium consumed by the key store.

    The key store owns the key lifecycle; a backend only keeps opaque
    records addressed by identifier. get() returns None for a missing id,
    delete() of a missing id is a no-op.
    """
    name: str

    def put(self, identifier: bytes, record: bytes) -> None:
        raise NotImplementedError

    def get(self, identifier: bytes) -> bytes | None:
        raise NotImplementedError

    def delete(self, identifier: bytes) -> None:
        raise NotImplementedError
