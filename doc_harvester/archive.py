"""Pack fetched documents into one ZIP and keep the run log."""

import asyncio
import io
import logging
import os
import re
import zipfile
from typing import List, Optional, Set

from .errors import NoFilesDownloaded
from .models import ArchiveEntry, DocumentDescriptor, FetchOutcome, RunSummary
from .validator import COMPOUND, PDF, ZIP, sniff_kind

logger = logging.getLogger("doc_harvester")

RESERVED_CHARS = re.compile(r'[/\\:*?"<>|]')
WHITESPACE = re.compile(r"\s+")
PAGE_IN_SOURCE = re.compile(r"page[\s_-]*(\d+)", re.IGNORECASE)


def sanitize(name: str) -> str:
    return RESERVED_CHARS.sub("_", name)


def declared_extension(doc: DocumentDescriptor) -> str:
    declared = (doc.document_type or doc.content_type or "").lower()
    if "pdf" in declared:
        return "pdf"
    if "zip" in declared:
        return "zip"
    if "doc" in declared:
        return "docx" if "docx" in declared else "doc"
    return "pdf"


def infer_extension(doc: DocumentDescriptor, data: Optional[bytes] = None) -> str:
    """Declared type, overridden by the byte signature, overridden by watermark URLs."""
    ext = declared_extension(doc)

    kind = sniff_kind(data) if data else None
    if kind == PDF:
        ext = "pdf"
    elif kind == ZIP:
        ext = "docx" if ext == "docx" else "zip"
    elif kind == COMPOUND:
        ext = "doc"

    # Watermark endpoints always render to PDF, whatever wrapper they return.
    if "Watermark" in (doc.url or ""):
        ext = "pdf"
    return ext


def page_folder(doc: DocumentDescriptor) -> str:
    if doc.page_number:
        return f"Page_{doc.page_number}/"
    if doc.source_page:
        m = PAGE_IN_SOURCE.search(doc.source_page)
        if m:
            return f"Page_{m.group(1)}/"
    return ""


def build_file_name(doc: DocumentDescriptor, data: Optional[bytes] = None) -> str:
    """Archive path for a fetched document.

    The ``_idx<global_index>`` suffix is what keeps names unique, so callers
    must hand in descriptors whose global indexes are unique within the run.
    """
    base = doc.name or doc.title or f"document_{doc.global_index + 1}"
    base = WHITESPACE.sub("_", sanitize(base))

    suffix = ""
    if doc.row_number:
        suffix += f"_row{doc.row_number}"
    suffix += f"_idx{doc.global_index}"

    return f"{page_folder(doc)}{base}{suffix}.{infer_extension(doc, data)}"


class ArchiveAssembler:
    """Collects archive entries and the RunSummary for one run.

    ``record`` may be awaited from many concurrent fetch tasks; updates are
    serialized through a lock.
    """

    def __init__(self, total_requested: int, drive_prefix: str = "Google_Drive",
                 compression_level: int = 6):
        self.summary = RunSummary(total_requested=total_requested)
        self.drive_prefix = drive_prefix
        self.compression_level = compression_level
        self.entries: List[ArchiveEntry] = []
        self._paths: Set[str] = set()
        self._lock = asyncio.Lock()

    def add_cloud_file(self, doc: DocumentDescriptor):
        """Add a file already transferred from the cloud folder. Always a success."""
        safe_path = sanitize(doc.path or doc.name or f"file_{doc.global_index}")
        path = self._unique(f"{self.drive_prefix}/{safe_path}")
        self._add_entry(path, doc.raw_bytes or b"")
        self.summary.add_success(doc.url, path, len(doc.raw_bytes or b""))

    async def record(self, doc: DocumentDescriptor, outcome: FetchOutcome):
        async with self._lock:
            if outcome.success and outcome.data is not None:
                path = build_file_name(doc, outcome.data)
                self._add_entry(path, outcome.data)
                self.summary.add_success(doc.url, path, len(outcome.data))
            else:
                self.summary.add_failure(doc.url, build_file_name(doc), outcome.errors)

    def finalize(self) -> bytes:
        """Close the run log and return the ZIP bytes."""
        self.summary.finalize()
        logger.info(
            f"Run complete: {self.summary.success_count} succeeded, "
            f"{self.summary.failure_count} failed of {self.summary.total_requested}"
        )
        if self.summary.success_count == 0:
            raise NoFilesDownloaded("No files downloaded", self.summary)

        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED,
                             compresslevel=self.compression_level) as zf:
            for entry in self.entries:
                zf.writestr(entry.path, entry.data)
        return buf.getvalue()

    def _add_entry(self, path: str, data: bytes):
        if path in self._paths:
            raise ValueError(f"Duplicate archive path: {path}")
        self._paths.add(path)
        self.entries.append(ArchiveEntry(path=path, data=data))

    def _unique(self, path: str) -> str:
        if path not in self._paths:
            return path
        stem, ext = os.path.splitext(path)
        n = 2
        while f"{stem}_{n}{ext}" in self._paths:
            n += 1
        return f"{stem}_{n}{ext}"
