"""REST client — ``TreeStore`` over HTTP."""

from stowage.client.config import ClientConfig, normalize_base_url
from stowage.client.http import HttpTreeStore, file_from_json, folder_from_json

__all__ = [
    "ClientConfig",
    "HttpTreeStore",
    "file_from_json",
    "folder_from_json",
    "normalize_base_url",
]
