from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

"""UploadStatus model and UploadState enum.

Tracks one document through ingestion: uploading -> (done | error). Values are
kept in a StatusStore keyed by upload id.
"""


class UploadState(Enum):
    """Status enum for the document lifecycle.

    - UPLOADING: document accepted, parsing/pricing/persisting in progress
    - DONE: processing finished (possibly with per-record failures)
    - ERROR: processing aborted by a fatal document error
    """
    UPLOADING = "uploading"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class UploadStatus:
    """Snapshot of one upload's progress."""
    upload_id: str
    filename: str
    state: UploadState = UploadState.UPLOADING
    products_processed: int = 0
    total_products: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None

    @property
    def progress(self) -> int:
        """Percentage of products persisted (100 once finished)."""
        if self.state is not UploadState.UPLOADING:
            return 100
        if self.total_products <= 0:
            return 0
        return min(100, int(self.products_processed * 100 / self.total_products))

    def advance(self, **changes: object) -> UploadStatus:
        return replace(self, **changes)  # type: ignore[arg-type]
