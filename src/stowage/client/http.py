"""HttpTreeStore — ``TreeStore`` over the workspace REST API."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from stowage.exceptions import (
    NameCollisionError,
    NotFoundError,
    RequestRejectedError,
    TransportError,
)
from stowage.tree.types import FileInfo, FolderInfo, TrashListing
from stowage.tree.utils import DEFAULT_MIME, guess_mime_type, sorted_by_name

from .config import ClientConfig

if TYPE_CHECKING:
    from collections.abc import Callable

    from stowage.exceptions import StowageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# JSON decoding
# =============================================================================


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return None


def _optional_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def folder_from_json(data: dict[str, Any]) -> FolderInfo:
    return FolderInfo(
        id=str(data["id"]),
        name=data["name"],
        parent_id=_optional_id(data.get("parent_id")),
        owner=_optional_id(data.get("owner")),
        created_at=_parse_datetime(data.get("created_at")),
        deleted_at=_parse_datetime(data.get("deleted_at")),
    )


def file_from_json(data: dict[str, Any]) -> FileInfo:
    return FileInfo(
        id=str(data["id"]),
        name=data["name"],
        folder_id=_optional_id(data.get("folder_id")),
        mime=data.get("mime") or DEFAULT_MIME,
        size=int(data.get("size") or 0),
        content_ref=_optional_id(data.get("content_ref")),
        owner=_optional_id(data.get("owner")),
        created_at=_parse_datetime(data.get("created_at")),
        deleted_at=_parse_datetime(data.get("deleted_at")),
    )


def _parse_record(
    body: dict[str, Any],
    key: str,
    parse: Callable[[dict[str, Any]], T],
    operation: str,
) -> T:
    """Decode ``body[key]`` with *parse*; a missing or malformed record is a ``TransportError``."""
    data = body.get(key)
    if not isinstance(data, dict):
        raise TransportError(f"{operation}: malformed response, no {key!r} record")
    try:
        return parse(data)
    except (KeyError, TypeError, ValueError) as e:
        raise TransportError(f"{operation}: malformed {key!r} record: {e!r}") from e


def _parse_list(
    body: dict[str, Any],
    key: str,
    parse: Callable[[dict[str, Any]], T],
    operation: str,
) -> list[T]:
    items = body.get(key) or []
    if not isinstance(items, list):
        raise TransportError(f"{operation}: malformed response, {key!r} is not a list")
    return [_parse_record({key: item}, key, parse, operation) for item in items]


# =============================================================================
# Client
# =============================================================================


class HttpTreeStore:
    """Tree store backed by a remote deployment.

    Every request carries the configured bearer credential.  Non-2xx
    responses become typed errors:

    - 404 → ``NotFoundError``
    - 409 → ``NameCollisionError``
    - any other 4xx → ``RequestRejectedError`` (a ``TransportError``
      subclass carrying the server's message and status).  The REST
      surface reports cyclic moves, trashed destinations and restores
      of live entities only as a 400 with a text message, so those
      arrive here rather than as ``CyclicMoveError``,
      ``DestinationTrashedError`` or ``NotTrashedError``.
    - 5xx, network failures, and 2xx bodies missing the expected
      record → ``TransportError``

    Nothing is retried here; retry policy belongs to the caller.

    Implements the ``TreeStore`` protocol.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=config.headers,
            timeout=httpx.Timeout(config.timeout),
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """No-op — the HTTP client connects lazily."""

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpTreeStore:
        await self.open()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        entity: str,
        entity_id: str | None = None,
        parent_id: str | None = None,
        name: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        logger.debug("%s %s (%s)", method, path, operation)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        text = response.text
        body: Any = {}
        if text:
            try:
                body = response.json()
            except ValueError:
                body = {}

        if response.is_error:
            message = body.get("error") if isinstance(body, dict) else None
            raise self._error_for(
                response.status_code,
                message or text or f"HTTP {response.status_code}",
                operation=operation,
                entity=entity,
                entity_id=entity_id,
                parent_id=parent_id,
                name=name,
            )

        return body if isinstance(body, dict) else {}

    @staticmethod
    def _error_for(
        status: int,
        message: str,
        *,
        operation: str,
        entity: str,
        entity_id: str | None,
        parent_id: str | None,
        name: str | None,
    ) -> StowageError:
        if status == 404:
            return NotFoundError(entity, entity_id, operation)
        if status == 409:
            return NameCollisionError(entity, parent_id, name or "", operation)
        if 400 <= status < 500:
            return RequestRejectedError(f"{operation}: {message}", status=status)
        return TransportError(f"{operation}: {message}", status=status)

    # ------------------------------------------------------------------
    # Browse
    # ------------------------------------------------------------------

    async def list_folders(self, parent_id: str | None = None) -> list[FolderInfo]:
        params = {"parent_id": parent_id} if parent_id is not None else None
        body = await self._request(
            "GET",
            "/folders",
            operation="list folders",
            entity="folder",
            entity_id=parent_id,
            params=params,
        )
        return sorted_by_name(_parse_list(body, "folders", folder_from_json, "list folders"))

    async def list_files(self, folder_id: str | None = None) -> list[FileInfo]:
        body = await self._request(
            "GET",
            f"/folders/{folder_id or 'root'}/files",
            operation="list files",
            entity="folder",
            entity_id=folder_id,
        )
        return sorted_by_name(_parse_list(body, "files", file_from_json, "list files"))

    async def find_child_folder_by_name(
        self, parent_id: str | None, name: str
    ) -> FolderInfo | None:
        for folder in await self.list_folders(parent_id):
            if folder.name == name:
                return folder
        return None

    async def download_url(self, file_id: str) -> str:
        body = await self._request(
            "GET",
            f"/files/{file_id}/download",
            operation="download file",
            entity="file",
            entity_id=file_id,
        )
        url = body.get("url")
        if not url:
            raise TransportError(f"download file: no URL returned for {file_id}")
        return str(url)

    # ------------------------------------------------------------------
    # Create / rename
    # ------------------------------------------------------------------

    async def create_folder(self, parent_id: str | None, name: str) -> FolderInfo:
        body = await self._request(
            "POST",
            "/folders",
            operation="create folder",
            entity="folder",
            entity_id=parent_id,
            parent_id=parent_id,
            name=name,
            json={"name": name, "parent_id": parent_id},
        )
        return _parse_record(body, "folder", folder_from_json, "create folder")

    async def rename_folder(self, folder_id: str, name: str) -> FolderInfo:
        body = await self._request(
            "PATCH",
            f"/folders/{folder_id}",
            operation="rename folder",
            entity="folder",
            entity_id=folder_id,
            name=name,
            json={"name": name},
        )
        return _parse_record(body, "folder", folder_from_json, "rename folder")

    async def upload_file(
        self,
        folder_id: str | None,
        name: str,
        data: bytes,
        mime: str | None = None,
    ) -> FileInfo:
        body = await self._request(
            "POST",
            "/files/upload",
            operation="upload file",
            entity="folder",
            entity_id=folder_id,
            parent_id=folder_id,
            name=name,
            files={"file": (name, data, mime or guess_mime_type(name))},
            data={"folder_id": folder_id or ""},
        )
        return _parse_record(body, "file", file_from_json, "upload file")

    async def rename_file(self, file_id: str, name: str) -> FileInfo:
        body = await self._request(
            "PATCH",
            f"/files/{file_id}",
            operation="rename file",
            entity="file",
            entity_id=file_id,
            name=name,
            json={"name": name},
        )
        return _parse_record(body, "file", file_from_json, "rename file")

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------

    async def move_folder(self, folder_id: str, new_parent_id: str | None) -> FolderInfo:
        body = await self._request(
            "PATCH",
            f"/folders/{folder_id}/move",
            operation="move folder",
            entity="folder",
            entity_id=folder_id,
            parent_id=new_parent_id,
            json={"parent_id": new_parent_id},
        )
        return _parse_record(body, "folder", folder_from_json, "move folder")

    async def move_file(self, file_id: str, new_folder_id: str | None) -> FileInfo:
        body = await self._request(
            "PATCH",
            f"/files/{file_id}/move",
            operation="move file",
            entity="file",
            entity_id=file_id,
            parent_id=new_folder_id,
            json={"folder_id": new_folder_id},
        )
        return _parse_record(body, "file", file_from_json, "move file")

    # ------------------------------------------------------------------
    # Trash
    # ------------------------------------------------------------------

    async def soft_delete_folder(self, folder_id: str) -> None:
        await self._request(
            "DELETE",
            f"/folders/{folder_id}",
            operation="trash folder",
            entity="folder",
            entity_id=folder_id,
        )

    async def soft_delete_file(self, file_id: str) -> None:
        await self._request(
            "DELETE",
            f"/files/{file_id}",
            operation="trash file",
            entity="file",
            entity_id=file_id,
        )

    async def list_trash(self) -> TrashListing:
        body = await self._request("GET", "/trash", operation="list trash", entity="trash")
        return TrashListing(
            folders=_parse_list(body, "folders", folder_from_json, "list trash"),
            files=_parse_list(body, "files", file_from_json, "list trash"),
        )

    async def restore_folder(self, folder_id: str) -> None:
        await self._request(
            "POST",
            f"/restore/folder/{folder_id}",
            operation="restore folder",
            entity="folder",
            entity_id=folder_id,
            json={},
        )

    async def restore_file(self, file_id: str) -> None:
        await self._request(
            "POST",
            f"/restore/file/{file_id}",
            operation="restore file",
            entity="file",
            entity_id=file_id,
            json={},
        )

    async def hard_delete_folder(self, folder_id: str) -> None:
        await self._request(
            "DELETE",
            f"/folders/{folder_id}/hard",
            operation="hard delete folder",
            entity="folder",
            entity_id=folder_id,
        )

    async def hard_delete_file(self, file_id: str) -> None:
        await self._request(
            "DELETE",
            f"/files/{file_id}/hard",
            operation="hard delete file",
            entity="file",
            entity_id=file_id,
        )
