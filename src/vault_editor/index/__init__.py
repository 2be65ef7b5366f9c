"""Vault metadata: the SQLite index and the scanner that feeds it."""

from .models import (
    BacklinkRecord,
    Candidate,
    FileRecord,
    ScanResult,
    TagCount,
    link_target,
    name_key,
    normalize_tag,
    rank_candidates,
)
from .scanner import ScanJob, ScanOutcome, ScannerBridge, ScanWorker
from .store import MetadataStore

__all__ = [
    "BacklinkRecord",
    "Candidate",
    "FileRecord",
    "ScanResult",
    "TagCount",
    "link_target",
    "name_key",
    "normalize_tag",
    "rank_candidates",
    "MetadataStore",
    "ScannerBridge",
    "ScanWorker",
    "ScanJob",
    "ScanOutcome",
]
