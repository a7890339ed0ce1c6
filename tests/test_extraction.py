"""Tests for delegated discovery through the extraction service."""

import json

import httpx
import pytest

from doc_harvester.config import ExtractionConfig
from doc_harvester.sources.extraction import (
    ExtractionApiError,
    ExtractionClient,
    ExtractionServiceSource,
    normalize_url,
)

BASE = "https://api.extract.test"


def make_client(handler):
    http = httpx.Client(base_url=BASE, transport=httpx.MockTransport(handler))
    return ExtractionClient("key", BASE, client=http)


class FakeService:
    def __init__(self, statuses, documents=None):
        self.statuses = list(statuses)
        self.documents = documents or []
        self.created = None

    def __call__(self, request):
        path = request.url.path
        if request.method == "POST" and path == "/scrape/":
            self.created = json.loads(request.content)
            return httpx.Response(200, json={"job_id": "job-1", "status": "pending"})
        if path == "/scrape/status/job-1":
            return httpx.Response(200, json={"job_id": "job-1", "status": self.statuses.pop(0)})
        if path == "/scrape/results/job-1":
            return httpx.Response(200, json={"job_id": "job-1", "documents": self.documents})
        return httpx.Response(404, json={"message": "not found"})


class TestNormalizeUrl:
    def test_adds_scheme(self):
        assert normalize_url("  example.gov/meetings ") == "https://example.gov/meetings"

    def test_keeps_scheme(self):
        assert normalize_url("http://example.gov") == "http://example.gov"


class TestExtractionClient:
    def test_error_carries_status_and_path(self):
        client = make_client(lambda req: httpx.Response(401, json={"message": "bad key"}))
        with pytest.raises(ExtractionApiError) as exc_info:
            client.get_job_status("abc")
        assert exc_info.value.status_code == 401
        assert exc_info.value.path == "/scrape/status/abc"
        assert "bad key" in str(exc_info.value)

    def test_cancel_job(self):
        seen = []

        def handler(req):
            seen.append((req.method, req.url.path))
            return httpx.Response(204)

        make_client(handler).cancel_job("abc")
        assert seen == [("DELETE", "/scrape/abc")]


class TestExtractionServiceSource:
    def test_polls_until_complete(self):
        service = FakeService(
            ["pending", "in_progress", "completed"],
            documents=[
                {"url": "https://example.gov/a.pdf", "name": "Agenda", "source_page": "https://example.gov/p?page=2",
                 "document_type": "application/pdf", "confidence_score": 0.9},
                {"url": "https://example.gov/b"},
            ],
        )
        sleeps = []
        source = ExtractionServiceSource(make_client(service), "example.gov", ExtractionConfig(),
                                         sleep=sleeps.append)

        docs = source.collect()

        assert sleeps == [8.0, 8.0]
        assert service.created["website"] == "https://example.gov"
        assert service.created["parameters"]["confidence_threshold"] == 0.1
        assert docs[0].name == "Agenda"
        assert docs[0].confidence_score == 0.9
        assert docs[1].name == "document_2"
        assert docs[1].title == "document_2"
        assert docs[1].document_type == "document"
        assert docs[1].content_type == "application/pdf"
        assert [d.global_index for d in docs] == [0, 1]

    def test_failed_job_raises(self):
        source = ExtractionServiceSource(make_client(FakeService(["failed"])), "example.gov",
                                         ExtractionConfig(), sleep=lambda s: None)
        with pytest.raises(RuntimeError, match="failed"):
            source.collect()

    def test_gives_up_after_max_wait(self):
        ticks = iter(range(0, 10_000, 300))
        source = ExtractionServiceSource(
            make_client(FakeService(["pending"] * 10)), "example.gov",
            ExtractionConfig(max_wait=600), sleep=lambda s: None, clock=lambda: next(ticks))
        with pytest.raises(TimeoutError):
            source.collect()
