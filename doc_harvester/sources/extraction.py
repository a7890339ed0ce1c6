"""Delegated discovery through the external document extraction service.

The service crawls a website and reports the document links it found; this
module only submits the job, waits for it, and turns the results into
descriptors.
"""

import logging
import time
from typing import Callable, Generator, Optional

import httpx

from ..config import ExtractionConfig
from ..models import REMOTE, DocumentDescriptor
from .base import BaseSource

logger = logging.getLogger("doc_harvester")

ACTIVE_STATUSES = ("pending", "in_progress")

DEFAULT_SCRAPE_PARAMETERS = {
    "single_page": False,
    "timeout": 1800,
    "confidence_threshold": 0.1,
    "file_type": "document",
    "max_file_size_mb": 100,
    "form": False,
}


def normalize_url(url: str) -> str:
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        return f"https://{url}"
    return url


class ExtractionApiError(Exception):
    def __init__(self, message: str, status_code: int, path: str):
        self.status_code = status_code
        self.path = path
        super().__init__(f"{message} (status={status_code}, path={path})")


class ExtractionClient:
    def __init__(self, api_key: str, base_url: str = "https://api.skop.dev", timeout: float = 30.0,
                 client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        return self._client

    def close(self):
        if self._client and not self._client.is_closed:
            self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        resp = self.client.request(method, path, **kwargs)
        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}
        if not resp.is_success:
            message = data.get("message") if isinstance(data, dict) else None
            raise ExtractionApiError(message or "API request failed", resp.status_code, path)
        return data

    def health_check(self) -> dict:
        return self._request("GET", "/health/")

    def create_scrape_job(self, website: str, prompt: str, parameters: Optional[dict] = None) -> dict:
        body = {"website": website, "prompt": prompt,
                "parameters": parameters or dict(DEFAULT_SCRAPE_PARAMETERS)}
        return self._request("POST", "/scrape/", json=body)

    def get_job_status(self, job_id: str) -> dict:
        return self._request("GET", f"/scrape/status/{job_id}")

    def get_job_results(self, job_id: str) -> dict:
        return self._request("GET", f"/scrape/results/{job_id}")

    def cancel_job(self, job_id: str):
        self._request("DELETE", f"/scrape/{job_id}")


class ExtractionServiceSource(BaseSource):
    """Runs one extraction job for *website_url* and yields what it found."""

    name = "extraction_service"

    def __init__(self, client: ExtractionClient, website_url: str, config: ExtractionConfig,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.client = client
        self.website_url = normalize_url(website_url)
        self.config = config
        self.sleep = sleep
        self.clock = clock
        self.job_id: Optional[str] = None

    def discover(self) -> Generator[DocumentDescriptor, None, None]:
        logger.info(f"[{self.name}] Normalized URL for scraping: {self.website_url}")
        job = self.client.create_scrape_job(self.website_url, self.config.prompt)
        self.job_id = job["job_id"]
        logger.info(f"[{self.name}] Scrape job created: {self.job_id}")

        self._wait_for_completion()

        results = self.client.get_job_results(self.job_id)
        for idx, d in enumerate(results.get("documents") or []):
            yield self._descriptor(d, idx)

    def _wait_for_completion(self):
        start = self.clock()
        status = self.client.get_job_status(self.job_id)
        while status.get("status") in ACTIVE_STATUSES:
            if self.clock() - start > self.config.max_wait:
                raise TimeoutError(f"Scrape job timed out after {self.config.max_wait:g}s")
            logger.info(f"[{self.name}] Job {self.job_id} status: {status.get('status')}, waiting...")
            self.sleep(self.config.poll_interval)
            status = self.client.get_job_status(self.job_id)

        if status.get("status") != "completed":
            raise RuntimeError(f"Scrape job failed with status: {status.get('status')}")
        logger.info(f"[{self.name}] Scrape job completed: {self.job_id}")

    @staticmethod
    def _descriptor(d: dict, idx: int) -> DocumentDescriptor:
        fallback = f"document_{idx + 1}"
        return DocumentDescriptor(
            url=d.get("url", ""),
            name=d.get("name") or fallback,
            title=d.get("name") or d.get("source_page") or fallback,
            document_type=d.get("document_type") or "document",
            source_page=d.get("source_page") or "",
            content_type=d.get("document_type") or "application/pdf",
            global_index=idx,
            confidence_score=float(d.get("confidence_score") or 0.0),
            source=REMOTE,
        )
