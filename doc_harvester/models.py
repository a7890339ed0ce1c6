"""Data models for the harvester."""

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

REMOTE = "remote"
CLOUD_FOLDER = "cloud-folder"

# Accepted spellings for descriptor fields, first match wins.
_ALIASES = {
    "document_type": ("document_type", "documentType"),
    "source_page": ("source_page", "sourcePage"),
    "content_type": ("content_type", "contentType"),
    "global_index": ("global_index", "globalIndex"),
    "confidence_score": ("confidence_score", "confidenceScore"),
    "page_number": ("page_number", "pageNumber"),
    "row_number": ("row_number", "rowNumber"),
    "raw_bytes": ("raw_bytes", "rawBytes", "rawData"),
}


def _pick(raw: Dict[str, Any], key: str, default=None):
    for alias in _ALIASES.get(key, (key,)):
        value = raw.get(alias)
        if value is not None:
            return value
    return default


def _raw_bytes(value) -> Optional[bytes]:
    """Inline file content; JSON callers send it base64-encoded."""
    if value is None or isinstance(value, bytes):
        return value
    if isinstance(value, bytearray):
        return bytes(value)
    if isinstance(value, str):
        return base64.b64decode(value, validate=True)
    raise ValueError(f"raw_bytes must be bytes or a base64 string, not {type(value).__name__}")


def _optional_int(value) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class DocumentDescriptor:
    """One document to retrieve, as handed over by discovery or the Drive adapter."""

    url: str
    name: str = ""
    title: str = ""
    document_type: str = ""
    source_page: str = ""
    content_type: str = ""
    global_index: int = 0
    confidence_score: float = 0.0
    page_number: Optional[int] = None
    row_number: Optional[int] = None
    raw_bytes: Optional[bytes] = field(default=None, repr=False)
    path: Optional[str] = None
    source: str = REMOTE

    @property
    def is_cloud_file(self) -> bool:
        return self.source == CLOUD_FOLDER and self.raw_bytes is not None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], index: int = 0) -> "DocumentDescriptor":
        """Build a descriptor from a snake_case or camelCase mapping."""
        source = raw.get("source") or REMOTE
        if source == "google-drive":
            source = CLOUD_FOLDER
        return cls(
            url=str(raw.get("url") or ""),
            name=str(raw.get("name") or ""),
            title=str(raw.get("title") or ""),
            document_type=str(_pick(raw, "document_type", "")),
            source_page=str(_pick(raw, "source_page", "")),
            content_type=str(_pick(raw, "content_type", "")),
            global_index=_optional_int(_pick(raw, "global_index")) or index,
            confidence_score=float(_pick(raw, "confidence_score", 0.0) or 0.0),
            page_number=_optional_int(_pick(raw, "page_number")),
            row_number=_optional_int(_pick(raw, "row_number")),
            raw_bytes=_raw_bytes(_pick(raw, "raw_bytes")),
            path=raw.get("path"),
            source=source,
        )


@dataclass
class FetchOutcome:
    success: bool
    data: Optional[bytes] = field(default=None, repr=False)
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ArchiveEntry:
    path: str
    data: bytes = field(repr=False)


@dataclass
class LogEntry:
    url: str
    file_name: str
    status: str  # success, failed
    size: Optional[int] = None
    errors: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"url": self.url, "fileName": self.file_name, "status": self.status}
        if self.size is not None:
            out["size"] = self.size
        if self.errors is not None:
            out["errors"] = list(self.errors)
        return out


@dataclass
class RunSummary:
    """Append-only record of every completed document in a run."""

    total_requested: int
    success_count: int = 0
    failure_count: int = 0
    log: List[LogEntry] = field(default_factory=list)
    finalized: bool = False

    def add_success(self, url: str, file_name: str, size: int):
        self._append(LogEntry(url=url, file_name=file_name, status="success", size=size))
        self.success_count += 1

    def add_failure(self, url: str, file_name: str, errors: List[str]):
        self._append(LogEntry(url=url, file_name=file_name, status="failed", errors=list(errors)))
        self.failure_count += 1

    def _append(self, entry: LogEntry):
        if self.finalized:
            raise RuntimeError("RunSummary is finalized")
        self.log.append(entry)

    def finalize(self) -> "RunSummary":
        self.finalized = True
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successfulDownloads": self.success_count,
            "failedDownloads": self.failure_count,
            "totalDocuments": self.total_requested,
            "downloadLogs": self.log_dicts(),
        }

    def log_dicts(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self.log]
