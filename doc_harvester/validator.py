"""Decide whether a downloaded body is a real document or an error/login page."""

from dataclasses import dataclass
from typing import Optional

MIN_DOCUMENT_SIZE = 500
LOOSE_MIN_SIZE = 1000
LARGE_BODY_SIZE = 50_000

PDF = "pdf"
ZIP = "zip"
COMPOUND = "compound"

# Hex prefixes of the formats we accept without further checks.
SIGNATURES = {
    "25504446": PDF,  # %PDF
    "504b": ZIP,  # PK, also docx/xlsx/pptx
    "d0cf": COMPOUND,  # legacy .doc/.xls
}

# Strategies whose sites serve documents wrapped in loosely typed responses.
LOOSE_STRATEGIES = ("watermark", "government")

HTML_MARKERS = (b"<html", b"<!doc")


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None
    kind: Optional[str] = None


def hex_header(data: bytes, length: int = 10) -> str:
    return data[:length].hex()


def sniff_kind(data: bytes) -> Optional[str]:
    """Return pdf/zip/compound from the leading bytes, or None."""
    header = hex_header(data)
    for prefix, kind in SIGNATURES.items():
        if header.startswith(prefix):
            return kind
    return None


def looks_like_html(data: bytes) -> bool:
    if len(data) >= LARGE_BODY_SIZE:
        return False
    head = data[:1024].lower()
    return any(marker in head for marker in HTML_MARKERS)


def validate_content(data: bytes, strategy: str = "") -> ValidationResult:
    size = len(data)
    if size <= MIN_DOCUMENT_SIZE:
        return ValidationResult(False, f"Response too small ({size} bytes)")

    kind = sniff_kind(data)
    if kind:
        return ValidationResult(True, kind=kind)

    if strategy in LOOSE_STRATEGIES and size > LOOSE_MIN_SIZE and not looks_like_html(data):
        return ValidationResult(True)

    if size > LARGE_BODY_SIZE:
        return ValidationResult(True)

    preview = data[:200].decode("utf-8", errors="replace")[:50]
    return ValidationResult(
        False,
        f"Invalid content (header: {hex_header(data)[:20]}, text: {preview})",
    )
