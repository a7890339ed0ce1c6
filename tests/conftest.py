import random

import httpx
import pytest

from doc_harvester.config import DownloadConfig
from doc_harvester.downloader import Downloader

PDF_BYTES = b"%PDF-1.7\n" + b"0" * 2048


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class RequestLog:
    """MockTransport handler that records requests and replays a response function."""

    def __init__(self, respond):
        self.respond = respond
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


def make_downloader(respond, config=None, sleep=None):
    log = RequestLog(respond)
    client = httpx.AsyncClient(transport=httpx.MockTransport(log), follow_redirects=True)
    downloader = Downloader(
        config or DownloadConfig(),
        client=client,
        sleep=sleep or SleepRecorder(),
        rng=random.Random(0),
    )
    return downloader, log


@pytest.fixture
def pdf_bytes():
    return PDF_BYTES


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def downloader_factory(sleeper):
    def factory(respond, config=None):
        return make_downloader(respond, config=config, sleep=sleeper)
    return factory
