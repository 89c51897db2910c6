"""Ingestion inputs and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stowage.exceptions import StowageError
    from stowage.tree.types import FileInfo, FolderInfo


@dataclass
class IngestItem:
    """One file from a directory-style selection.

    ``relative_path`` starts with the selected top directory, e.g.
    ``"Photos/2024/beach.jpg"``.
    """

    relative_path: str
    data: bytes
    mime: str | None = None


@dataclass
class IngestOutcome:
    """Result for a single file of a batch."""

    relative_path: str
    success: bool
    message: str
    file: FileInfo | None = None
    error: StowageError | None = None
    skipped: bool = False


@dataclass
class IngestReport:
    """Result of a whole batch, in input order."""

    destination_id: str | None
    outcomes: list[IngestOutcome] = field(default_factory=list)
    folders_created: list[FolderInfo] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def message(self) -> str:
        return f"Ingested {self.succeeded} of {self.total} file(s), {self.failed} failed"
