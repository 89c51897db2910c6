"""File model — metadata for bytes held by the external content store.

Provides ``FileBase`` (non-table) and ``File`` (concrete table).  File
names are not unique at the database level: uploads may create
same-named siblings, while rename and move check collisions in the
mutating transaction.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class FileBase(SQLModel):
    """Base fields for a stored file. Subclass with ``table=True`` for a concrete table."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(default="")
    folder_id: str | None = Field(default=None, index=True)
    mime: str = Field(default="application/octet-stream")
    size: int = Field(default=0)
    content_ref: str | None = Field(default=None)
    owner: str = Field(default="", index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    deleted_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class File(FileBase, table=True):
    """Default file table — ``stowage_files``."""

    __tablename__ = "stowage_files"
