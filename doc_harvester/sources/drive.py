"""Google Drive folder tree as a substitute source for organizational portals.

Some portals block automated downloads outright; their documents are mirrored
into a Drive folder instead. When a request names such a portal the whole
folder tree is transferred and nothing is fetched from the portal itself.
"""

import io
import json
import logging
from typing import Generator, List, Optional, Tuple

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseDownload

from ..errors import DriveNotConfigured
from ..models import CLOUD_FOLDER, DocumentDescriptor
from .base import BaseSource

logger = logging.getLogger("doc_harvester")

DRIVE_SCOPE_READONLY = "https://www.googleapis.com/auth/drive.readonly"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
LIST_FIELDS = "nextPageToken, files(id, name, mimeType, size)"


def is_portal_url(url: str, pattern: str) -> bool:
    return bool(url) and pattern.lower() in url.lower().strip()


class DriveClient:
    """Thin read-only wrapper over the Drive v3 files API."""

    def __init__(self, service):
        self.service = service

    @classmethod
    def from_service_account_json(cls, key_json: str) -> "DriveClient":
        if not key_json:
            raise DriveNotConfigured("Google Drive credentials not configured",
                                     detail="GOOGLE_SERVICE_ACCOUNT_KEY missing")
        try:
            info = json.loads(key_json)
            if not isinstance(info, dict):
                raise ValueError("service account key must be a JSON object")
            credentials = service_account.Credentials.from_service_account_info(
                info, scopes=[DRIVE_SCOPE_READONLY])
        except (ValueError, KeyError) as e:
            raise DriveNotConfigured("Google Drive credentials not configured",
                                     detail=f"Invalid GOOGLE_SERVICE_ACCOUNT_KEY: {e}") from e
        return cls(build("drive", "v3", credentials=credentials, cache_discovery=False))

    def list_children(self, folder_id: str, page_token: Optional[str] = None,
                      page_size: int = 100) -> Tuple[List[dict], Optional[str]]:
        """Return one page of (items, next_page_token) under *folder_id*."""
        res = self.service.files().list(
            q=f"'{folder_id}' in parents and trashed = false",
            fields=LIST_FIELDS,
            pageSize=page_size,
            pageToken=page_token,
        ).execute()
        return res.get("files", []), res.get("nextPageToken")

    def download(self, file_id: str) -> bytes:
        buf = io.BytesIO()
        downloader = MediaIoBaseDownload(buf, self.service.files().get_media(fileId=file_id))
        done = False
        while not done:
            _, done = downloader.next_chunk()
        return buf.getvalue()


class DriveFolderSource(BaseSource):
    name = "drive_folder"

    def __init__(self, client: DriveClient, folder_id: str, page_size: int = 100):
        self.client = client
        self.folder_id = folder_id
        self.page_size = page_size
        self._index = 0

    def discover(self) -> Generator[DocumentDescriptor, None, None]:
        self._index = 0
        yield from self._walk(self.folder_id, "")

    def _walk(self, parent_id: str, current_path: str) -> Generator[DocumentDescriptor, None, None]:
        page_token = None
        while True:
            items, page_token = self.client.list_children(parent_id, page_token, self.page_size)

            for item in items:
                file_id = item.get("id")
                name = item.get("name")
                if not file_id or not name:
                    continue

                path = f"{current_path}/{name}" if current_path else name
                if item.get("mimeType") == FOLDER_MIME_TYPE:
                    yield from self._walk(file_id, path)
                    continue

                try:
                    data = self.client.download(file_id)
                except Exception as e:
                    # One unreadable file must not end the walk.
                    logger.error(f"[{self.name}] Download failed: {path}: {e}")
                    continue

                yield self._descriptor(item, path, data)

            if not page_token:
                break

    def _descriptor(self, item: dict, path: str, data: bytes) -> DocumentDescriptor:
        mime_type = item.get("mimeType") or "application/octet-stream"
        doc = DocumentDescriptor(
            url=f"drive://folder/{path}",
            name=item["name"],
            title=item["name"],
            document_type=mime_type,
            content_type=mime_type,
            global_index=self._index,
            confidence_score=1.0,
            raw_bytes=data,
            path=path,
            source=CLOUD_FOLDER,
        )
        self._index += 1
        return doc
