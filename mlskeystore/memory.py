# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

from mlskeystore.base import StorageBackend


class MemoryBackend(StorageBackend):
    """
    Process-local backend. Single dict operations are atomic, so no lock
    is taken here; per-identifier serialisation is the key store's job.
    """
    name = "memory"

    def __init__(self) -> None:
        self._records: dict[bytes, bytes] = {}

    def put(self, identifier: bytes, record: bytes) -> None:
        self._records[bytes(identifier)] = bytes(record)

    def get(self, identifier: bytes) -> bytes | None:
        return self._records.get(bytes(identifier))

    def delete(self, identifier: bytes) -> None:
        self._records.pop(bytes(identifier), None)

    def __len__(self) -> int:
        return len(self._records)
