"""Document sources that stand in for an explicit document list."""

from .base import BaseSource
from .drive import DriveClient, DriveFolderSource, is_portal_url
from .extraction import ExtractionClient, ExtractionServiceSource, normalize_url

__all__ = [
    "BaseSource",
    "DriveClient",
    "DriveFolderSource",
    "ExtractionClient",
    "ExtractionServiceSource",
    "is_portal_url",
    "normalize_url",
]
