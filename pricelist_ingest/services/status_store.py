from __future__ import annotations

from typing import Protocol

from ..models.upload_status import UploadStatus

"""Upload status store.

The orchestrator records each document's UploadStatus through an injected
StatusStore instead of a module-level registry.
"""

__all__ = [
    "StatusStore",
    "InMemoryStatusStore",
]


class StatusStore(Protocol):
    def get(self, upload_id: str) -> UploadStatus | None: ...

    def put(self, upload_id: str, status: UploadStatus) -> None: ...

    def recent(self, limit: int = 10) -> list[UploadStatus]: ...


class InMemoryStatusStore:
    """Dict-backed store.

    Process-local: statuses are not visible to other processes and are lost on
    restart. Back StatusStore with a shared key-value store when the tool runs
    as more than one process.
    """

    def __init__(self) -> None:
        self._statuses: dict[str, UploadStatus] = {}

    def get(self, upload_id: str) -> UploadStatus | None:
        return self._statuses.get(upload_id)

    def put(self, upload_id: str, status: UploadStatus) -> None:
        self._statuses[upload_id] = status

    def recent(self, limit: int = 10) -> list[UploadStatus]:
        """Most recently started uploads first."""
        ordered = sorted(
            self._statuses.values(),
            key=lambda s: (s.started_at is not None, s.started_at),
            reverse=True,
        )
        return ordered[:limit]

    def __len__(self) -> int:
        return len(self._statuses)
