"""Fetch one document by walking its strategy list with retries, pacing and validation."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx

from .config import DownloadConfig
from .models import DocumentDescriptor, FetchOutcome
from .security import check_url, exceeds_size
from .strategies import STRATEGIES, USER_AGENTS, build_headers, select_strategies, timeout_for
from .validator import validate_content

logger = logging.getLogger("doc_harvester")

# Statuses that mean the host is refusing this client; retrying the same
# strategy will not help.
QUOTA_STATUSES = (401, 403, 429)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class AttemptResult:
    ok: bool
    data: Optional[bytes] = None
    error: Optional[str] = None
    status: Optional[int] = None
    timed_out: bool = False


class FileTooLarge(Exception):
    pass


class Downloader:
    def __init__(self, config: DownloadConfig, client: Optional[httpx.AsyncClient] = None,
                 sleep: Sleep = asyncio.sleep, rng: Optional[random.Random] = None):
        self.config = config
        self.sleep = sleep
        self.rng = rng or random.Random()
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout, connect=self.config.connect_timeout),
                follow_redirects=True,
            )
        return self._client

    async def aclose(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch_document(self, doc: DocumentDescriptor) -> FetchOutcome:
        """Try every strategy for *doc* until one returns a validated body."""
        blocked = check_url(doc.url)
        if blocked:
            logger.warning(f"Skipping {doc.url!r}: {blocked}")
            return FetchOutcome(success=False, errors=[blocked])

        errors = []
        strategies = select_strategies(doc.url, self.config.government_markers)

        for strategy in strategies:
            for attempt in range(1, self.config.attempts_per_strategy + 1):
                user_agent = self.rng.choice(USER_AGENTS)
                if attempt > 1:
                    await self.sleep(self.config.retry_delay * attempt)

                result = await self._attempt(doc.url, strategy, user_agent, attempt)
                if result.ok:
                    logger.info(f"Downloaded {doc.url} with {strategy} ({len(result.data):,} bytes)")
                    return FetchOutcome(success=True, data=result.data, errors=errors)

                errors.append(result.error)
                logger.warning(f"Attempt failed for {doc.url}: {result.error}")

                if result.status in QUOTA_STATUSES:
                    break
                if result.timed_out:
                    await self.sleep(self.config.timeout_delay * attempt)

            await self.sleep(self.config.strategy_pause)

        logger.error(f"All strategies exhausted for {doc.url} ({len(errors)} errors)")
        return FetchOutcome(success=False, errors=errors)

    async def _attempt(self, url: str, strategy: str, user_agent: str, attempt: int) -> AttemptResult:
        suffix = f"(Strategy: {strategy}, Attempt: {attempt})"

        blocked = check_url(url)
        if blocked:
            return AttemptResult(ok=False, error=f"{blocked} {suffix}")

        headers = build_headers(STRATEGIES[strategy], url, user_agent)
        timeout = timeout_for(url, self.config.timeout, self.config.slow_timeout,
                              self.config.government_markers)

        try:
            # httpx timeouts are per phase; the deadline covers the whole transfer.
            status, reason, data = await asyncio.wait_for(
                self._stream_download(url, headers, timeout), timeout)
        except (httpx.TimeoutException, asyncio.TimeoutError):
            return AttemptResult(ok=False, error=f"Timeout after {timeout:g}s {suffix}", timed_out=True)
        except FileTooLarge as e:
            return AttemptResult(ok=False, error=f"{e} {suffix}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return AttemptResult(ok=False, error=f"{type(e).__name__}: {e} {suffix}")

        if not 200 <= status < 300:
            return AttemptResult(ok=False, status=status, error=f"HTTP {status}: {reason} {suffix}")

        verdict = validate_content(data, strategy)
        if not verdict.valid:
            return AttemptResult(ok=False, status=status, error=f"{verdict.reason} {suffix}")
        return AttemptResult(ok=True, status=status, data=data)

    async def _stream_download(self, url: str, headers: dict, timeout: float):
        """Return (status, reason, body). The body is empty for non-2xx responses."""
        limit = self.config.max_file_size
        async with self.client.stream("GET", url, headers=headers, timeout=timeout) as resp:
            if not resp.is_success:
                return resp.status_code, resp.reason_phrase, b""

            content_length = resp.headers.get("content-length")
            if content_length and content_length.isdigit() and exceeds_size(int(content_length), limit):
                raise FileTooLarge(f"File too large: {content_length} bytes (max {limit})")

            chunks = []
            size = 0
            async for chunk in resp.aiter_bytes(chunk_size=65536):
                size += len(chunk)
                if exceeds_size(size, limit):
                    raise FileTooLarge(f"File exceeded max size during download: {size} bytes (max {limit})")
                chunks.append(chunk)

            return resp.status_code, resp.reason_phrase, b"".join(chunks)
