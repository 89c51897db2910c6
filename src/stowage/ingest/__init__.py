"""Ingestion layer — path resolution and bulk directory upload."""

from stowage.ingest.coordinator import IngestionCoordinator
from stowage.ingest.resolver import PathResolver
from stowage.ingest.types import IngestItem, IngestOutcome, IngestReport

__all__ = [
    "IngestItem",
    "IngestOutcome",
    "IngestReport",
    "IngestionCoordinator",
    "PathResolver",
]
