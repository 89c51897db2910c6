"""Name validation, relative path splitting, listing order, MIME guessing."""

from __future__ import annotations

import mimetypes
from typing import TYPE_CHECKING, Protocol, TypeVar

from stowage.exceptions import InvalidNameError, InvalidPathError

if TYPE_CHECKING:
    from collections.abc import Iterable

MAX_NAME_LENGTH = 255
DEFAULT_MIME = "application/octet-stream"


class _Named(Protocol):
    id: str
    name: str


T = TypeVar("T", bound=_Named)


# =============================================================================
# Names
# =============================================================================


def validate_name(name: str) -> str:
    """Return *name* unchanged if it can be stored, else raise ``InvalidNameError``.

    Names are compared case-sensitively everywhere, so no case folding
    happens here.
    """
    if not name or not name.strip():
        raise InvalidNameError("Name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidNameError(f"Name too long ({len(name)} > {MAX_NAME_LENGTH})")
    if "/" in name or "\x00" in name:
        raise InvalidNameError(f"Name contains a forbidden character: {name!r}")
    if name in (".", ".."):
        raise InvalidNameError(f"Reserved name: {name!r}")
    return name


def sort_key(item: _Named) -> tuple[str, str, str]:
    """Case-insensitive name order, ties broken case-sensitively then by id."""
    return (item.name.casefold(), item.name, item.id)


def sorted_by_name(items: Iterable[T]) -> list[T]:
    return sorted(items, key=sort_key)


# =============================================================================
# Relative paths
# =============================================================================


def split_relative_path(relative_path: str) -> list[str]:
    """Split a directory-selection path into segments.

    Backslashes are treated as separators and empty segments dropped.

    Examples:
        split_relative_path("Top/sub/file.txt") -> ["Top", "sub", "file.txt"]
        split_relative_path("/Top//file.txt/") -> ["Top", "file.txt"]
    """
    segments = [s for s in relative_path.replace("\\", "/").split("/") if s]
    for segment in segments:
        if segment in (".", ".."):
            raise InvalidPathError(f"Relative segment not allowed in {relative_path!r}")
    return segments


def guess_mime_type(name: str) -> str:
    """Guess a MIME type from *name*, falling back to octet-stream."""
    mime, _ = mimetypes.guess_type(name)
    return mime or DEFAULT_MIME
