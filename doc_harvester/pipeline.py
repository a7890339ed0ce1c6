"""Core entry point: resolve a document list, fetch it, and pack the archive."""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Union

from .archive import ArchiveAssembler
from .config import AppConfig
from .downloader import Downloader
from .errors import (
    DiscoveryFailed,
    DriveEmpty,
    DriveNotConfigured,
    DriveTransferFailed,
    HarvestError,
    InvalidJobId,
    InvalidRequest,
)
from .models import DocumentDescriptor, RunSummary
from .scheduler import BatchScheduler
from .security import check_document_count
from .sources.drive import DriveClient, DriveFolderSource, is_portal_url
from .sources.extraction import ExtractionClient, ExtractionServiceSource

logger = logging.getLogger("doc_harvester")

JOB_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def validate_job_id(job_id: str) -> bool:
    return bool(JOB_ID_PATTERN.match(job_id or ""))


@dataclass
class HarvestRequest:
    documents: Optional[List[Union[DocumentDescriptor, dict]]] = None
    job_id: Optional[str] = None
    possible_url: str = ""


@dataclass
class HarvestResult:
    archive: bytes = field(repr=False)
    file_name: str
    summary: RunSummary


def coerce_documents(raw: Optional[Iterable[Any]]) -> Optional[List[DocumentDescriptor]]:
    if raw is None:
        return None
    docs = []
    for idx, item in enumerate(raw):
        if isinstance(item, DocumentDescriptor):
            docs.append(item)
        elif isinstance(item, dict):
            try:
                docs.append(DocumentDescriptor.from_dict(item, idx))
            except ValueError as e:
                raise InvalidRequest("Invalid document entry", detail=f"item {idx}: {e}") from e
        else:
            raise InvalidRequest("Invalid document entry", detail=f"item {idx} is {type(item).__name__}")
    return docs


def archive_file_name(job_id: Optional[str], now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"documents-{job_id or 'drive'}-{now.strftime('%Y-%m-%dT%H-%M-%S')}.zip"


class HarvestPipeline:
    def __init__(self, config: AppConfig, downloader: Downloader,
                 drive_client: Optional[DriveClient] = None,
                 extraction_client: Optional[ExtractionClient] = None):
        self.config = config
        self.downloader = downloader
        self.drive_client = drive_client
        self.extraction_client = extraction_client

    async def run(self, request: HarvestRequest) -> HarvestResult:
        if request.job_id and not validate_job_id(request.job_id):
            raise InvalidJobId("Invalid job ID")

        documents = coerce_documents(request.documents)
        possible_url = (request.possible_url or "").strip()

        if possible_url and is_portal_url(possible_url, self.config.drive.portal_pattern):
            logger.info("Portal URL detected, using Google Drive folder")
            documents = await self._from_drive()
        elif possible_url and documents is None:
            documents = await self._from_extraction(possible_url)

        check_document_count(len(documents or []), self.config.download.max_documents)
        return await self._harvest(documents, request.job_id)

    async def _harvest(self, documents: List[DocumentDescriptor], job_id: Optional[str]) -> HarvestResult:
        assembler = ArchiveAssembler(
            total_requested=len(documents),
            drive_prefix=self.config.archive.drive_prefix,
            compression_level=self.config.archive.compression_level,
        )

        remote = []
        for doc in documents:
            if doc.is_cloud_file:
                assembler.add_cloud_file(doc)
            else:
                remote.append(doc)

        if remote:
            scheduler = BatchScheduler(
                self.downloader.fetch_document,
                batch_size=self.config.download.batch_size,
                max_concurrent_batches=self.config.download.max_concurrent_batches,
            )
            await scheduler.run(remote, assembler.record)

        archive = assembler.finalize()
        return HarvestResult(archive=archive, file_name=archive_file_name(job_id),
                             summary=assembler.summary)

    async def _from_drive(self) -> List[DocumentDescriptor]:
        folder_id = self.config.drive.folder_id
        if not folder_id:
            raise DriveNotConfigured("Google Drive folder ID not configured")
        if self.drive_client is None:
            raise DriveNotConfigured("Google Drive credentials not configured")

        source = DriveFolderSource(self.drive_client, folder_id, self.config.drive.page_size)
        try:
            docs = await asyncio.to_thread(source.collect)
        except HarvestError:
            raise
        except Exception as e:
            logger.error(f"Google Drive failed: {e}")
            raise DriveTransferFailed("Failed to download from Google Drive", detail=str(e)) from e

        if not docs:
            raise DriveEmpty("No files in Google Drive folder")
        logger.info(f"Google Drive: {len(docs)} files downloaded")
        return docs

    async def _from_extraction(self, website_url: str) -> List[DocumentDescriptor]:
        if self.extraction_client is None:
            raise DiscoveryFailed("Scrape failed", detail="Missing extraction service API key")

        source = ExtractionServiceSource(self.extraction_client, website_url, self.config.extraction)
        try:
            return await asyncio.to_thread(source.collect)
        except Exception as e:
            logger.error(f"Scrape failed for {website_url}: {e}")
            raise DiscoveryFailed("Scrape failed", detail=str(e)) from e

    async def aclose(self):
        await self.downloader.aclose()
        if self.extraction_client:
            self.extraction_client.close()


def create_pipeline(config: AppConfig) -> HarvestPipeline:
    """Wire the real collaborators from *config*."""
    drive_client = None
    if config.drive.service_account_key:
        try:
            drive_client = DriveClient.from_service_account_json(config.drive.service_account_key)
        except DriveNotConfigured as e:
            logger.warning(f"Google Drive disabled: {e.detail}")

    extraction_client = None
    if config.extraction.api_key:
        extraction_client = ExtractionClient(
            config.extraction.api_key, config.extraction.base_url, config.extraction.timeout)

    return HarvestPipeline(config, Downloader(config.download), drive_client, extraction_client)
