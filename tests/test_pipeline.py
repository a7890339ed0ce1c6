"""End-to-end runs of the harvest pipeline against mocked hosts."""

import asyncio
import io
import zipfile

import httpx
import pytest

from doc_harvester.config import AppConfig
from doc_harvester.errors import (
    DiscoveryFailed,
    DriveEmpty,
    DriveNotConfigured,
    DriveTransferFailed,
    InvalidJobId,
    InvalidRequest,
    NoDocuments,
    NoFilesDownloaded,
    TooManyDocuments,
)
from doc_harvester.pipeline import (
    HarvestPipeline,
    HarvestRequest,
    archive_file_name,
    coerce_documents,
    validate_job_id,
)
from doc_harvester.sources.drive import FOLDER_MIME_TYPE

PORTAL_URL = "https://meetings.boardbook.org/Public/Organization/1234"


class FakeDriveClient:
    def __init__(self, fail=False):
        self.fail = fail

    def list_children(self, folder_id, page_token=None, page_size=100):
        if self.fail:
            raise RuntimeError("403 rate limit exceeded")
        tree = {
            "root": [{"id": "sub", "name": "Minutes", "mimeType": FOLDER_MIME_TYPE},
                     {"id": "r1", "name": "agenda.pdf", "mimeType": "application/pdf"}],
            "sub": [{"id": "s1", "name": "jan.pdf", "mimeType": "application/pdf"},
                    {"id": "s2", "name": "feb.pdf", "mimeType": "application/pdf"}],
            "empty": [],
        }
        return tree[folder_id], None

    def download(self, file_id):
        return f"%PDF {file_id}".encode()


def make_pipeline(downloader, drive_client=None, folder_id="", extraction_client=None):
    config = AppConfig()
    config.drive.folder_id = folder_id
    return HarvestPipeline(config, downloader, drive_client=drive_client,
                           extraction_client=extraction_client)


def run(pipeline, **kwargs):
    return asyncio.run(pipeline.run(HarvestRequest(**kwargs)))


def entries(archive):
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        return sorted(zf.namelist())


class TestScenarios:
    def test_all_documents_succeed(self, downloader_factory, pdf_bytes):
        downloader, log = downloader_factory(lambda req: httpx.Response(200, content=pdf_bytes))
        docs = [{"url": f"https://docs.example.com/{n}.pdf", "name": n}
                for n in ("agenda", "minutes", "budget")]

        result = run(make_pipeline(downloader), documents=docs, job_id="job_42")

        assert result.summary.success_count == 3
        assert result.summary.failure_count == 0
        assert entries(result.archive) == ["agenda_idx0.pdf", "budget_idx2.pdf", "minutes_idx1.pdf"]
        assert result.file_name.startswith("documents-job_42-")
        assert len(log.requests) == 3

    def test_blocked_everywhere_fails_run(self, downloader_factory):
        downloader, _ = downloader_factory(lambda req: httpx.Response(403))

        with pytest.raises(NoFilesDownloaded) as exc_info:
            run(make_pipeline(downloader), documents=[{"url": "https://docs.example.com/x.pdf"}])

        summary = exc_info.value.summary
        assert summary.success_count == 0
        assert summary.failure_count == 1
        assert len(summary.log[0].errors) == 7
        assert exc_info.value.to_dict()["downloadLogs"][0]["status"] == "failed"

    def test_portal_url_uses_drive_folder(self, downloader_factory):
        downloader, log = downloader_factory(lambda req: pytest.fail("no fetch expected"))

        result = run(make_pipeline(downloader, FakeDriveClient(), folder_id="root"),
                     possible_url=PORTAL_URL)

        assert entries(result.archive) == [
            "Google_Drive/Minutes_feb.pdf", "Google_Drive/Minutes_jan.pdf", "Google_Drive/agenda.pdf"]
        assert result.summary.success_count == 3
        assert all(e.status == "success" for e in result.summary.log)
        assert log.requests == []
        assert result.file_name.startswith("documents-drive-")

    def test_mixed_outcomes_add_up(self, downloader_factory, pdf_bytes):
        def respond(req):
            if "bad" in req.url.path:
                return httpx.Response(404)
            return httpx.Response(200, content=pdf_bytes)

        downloader, _ = downloader_factory(respond)
        docs = [{"url": "https://docs.example.com/good.pdf"},
                {"url": "https://docs.example.com/bad.pdf"},
                {"url": "http://localhost/internal.pdf"}]

        summary = run(make_pipeline(downloader), documents=docs).summary

        assert summary.success_count + summary.failure_count == summary.total_requested == 3
        failed = [e for e in summary.log if e.status == "failed"]
        assert any(e.errors[0].startswith("Invalid or blocked URL") for e in failed)


class TestInputErrors:
    def test_invalid_job_id(self, downloader_factory):
        downloader, log = downloader_factory(lambda req: httpx.Response(200))
        with pytest.raises(InvalidJobId):
            run(make_pipeline(downloader), documents=[{"url": "https://a.com/x"}], job_id="../etc")
        assert log.requests == []

    def test_too_many_documents(self, downloader_factory):
        downloader, log = downloader_factory(lambda req: httpx.Response(200))
        docs = [{"url": f"https://a.com/{i}"} for i in range(501)]
        with pytest.raises(TooManyDocuments):
            run(make_pipeline(downloader), documents=docs)
        assert log.requests == []

    def test_no_documents(self, downloader_factory):
        downloader, _ = downloader_factory(lambda req: httpx.Response(200))
        with pytest.raises(NoDocuments):
            run(make_pipeline(downloader), documents=[])
        with pytest.raises(NoDocuments):
            run(make_pipeline(downloader))

    def test_bad_document_entry(self, downloader_factory):
        downloader, _ = downloader_factory(lambda req: httpx.Response(200))
        with pytest.raises(InvalidRequest):
            run(make_pipeline(downloader), documents=["https://a.com/x"])

    def test_inline_content_must_be_base64(self, downloader_factory):
        downloader, _ = downloader_factory(lambda req: httpx.Response(200))
        docs = [{"url": "drive://folder/a.pdf", "source": "google-drive", "rawData": [37, 80]}]
        with pytest.raises(InvalidRequest):
            run(make_pipeline(downloader), documents=docs)


class TestSourceErrors:
    def test_drive_without_folder_id(self, downloader_factory):
        downloader, _ = downloader_factory(lambda req: httpx.Response(200))
        with pytest.raises(DriveNotConfigured):
            run(make_pipeline(downloader, FakeDriveClient()), possible_url=PORTAL_URL)

    def test_drive_without_client(self, downloader_factory):
        downloader, _ = downloader_factory(lambda req: httpx.Response(200))
        with pytest.raises(DriveNotConfigured):
            run(make_pipeline(downloader, folder_id="root"), possible_url=PORTAL_URL)

    def test_drive_empty(self, downloader_factory):
        downloader, _ = downloader_factory(lambda req: httpx.Response(200))
        with pytest.raises(DriveEmpty):
            run(make_pipeline(downloader, FakeDriveClient(), folder_id="empty"), possible_url=PORTAL_URL)

    def test_drive_transfer_failure(self, downloader_factory):
        downloader, _ = downloader_factory(lambda req: httpx.Response(200))
        with pytest.raises(DriveTransferFailed) as exc_info:
            run(make_pipeline(downloader, FakeDriveClient(fail=True), folder_id="root"),
                possible_url=PORTAL_URL)
        assert "rate limit" in exc_info.value.detail

    def test_discovery_without_client(self, downloader_factory):
        downloader, _ = downloader_factory(lambda req: httpx.Response(200))
        with pytest.raises(DiscoveryFailed):
            run(make_pipeline(downloader), possible_url="example.gov/meetings")


class TestHelpers:
    @pytest.mark.parametrize("job_id,ok", [
        ("zip-job-1700000000", True),
        ("abc_DEF-123", True),
        ("", False),
        ("has space", False),
        ("x" * 129, False),
    ])
    def test_validate_job_id(self, job_id, ok):
        assert validate_job_id(job_id) is ok

    def test_archive_file_name(self):
        from datetime import datetime, timezone
        now = datetime(2024, 5, 1, 12, 30, 5, tzinfo=timezone.utc)
        assert archive_file_name(None, now) == "documents-drive-2024-05-01T12-30-05.zip"

    def test_inline_content_is_base64_decoded(self):
        docs = coerce_documents([{"url": "drive://folder/a.pdf", "source": "google-drive",
                                  "rawData": "JVBERi0="}])
        assert docs[0].raw_bytes == b"%PDF-"
        assert docs[0].is_cloud_file
