"""Fan document fetches out in waves of concurrent batches."""

import asyncio
import dataclasses
import logging
from typing import Awaitable, Callable, List, Sequence

from .models import DocumentDescriptor, FetchOutcome

logger = logging.getLogger("doc_harvester")

FetchFn = Callable[[DocumentDescriptor], Awaitable[FetchOutcome]]
ResultFn = Callable[[DocumentDescriptor, FetchOutcome], Awaitable[None]]


class BatchScheduler:
    """Runs at most ``batch_size * max_concurrent_batches`` fetches at once.

    Documents are split into batches; up to ``max_concurrent_batches`` batches
    form a wave, every document in a wave runs concurrently, and the next wave
    starts only once the current one has fully drained.
    """

    def __init__(self, fetch: FetchFn, batch_size: int = 25, max_concurrent_batches: int = 2):
        if batch_size < 1 or max_concurrent_batches < 1:
            raise ValueError("batch_size and max_concurrent_batches must be positive")
        self.fetch = fetch
        self.batch_size = batch_size
        self.max_concurrent_batches = max_concurrent_batches

    def partition(self, docs: Sequence[DocumentDescriptor]) -> List[List[DocumentDescriptor]]:
        """Split *docs* into batches, stamping each with its run-unique global index."""
        batches = []
        for batch_idx, start in enumerate(range(0, len(docs), self.batch_size)):
            batch = []
            for local_idx, doc in enumerate(docs[start:start + self.batch_size]):
                global_index = batch_idx * self.batch_size + local_idx
                batch.append(dataclasses.replace(doc, global_index=global_index))
            batches.append(batch)
        return batches

    async def run(self, docs: Sequence[DocumentDescriptor], on_result: ResultFn) -> int:
        """Fetch every document, delivering each outcome to *on_result*. Returns the count."""
        batches = self.partition(docs)
        completed = 0

        for wave_start in range(0, len(batches), self.max_concurrent_batches):
            wave = batches[wave_start:wave_start + self.max_concurrent_batches]
            wave_docs = [doc for batch in wave for doc in batch]
            logger.info(
                f"Wave {wave_start // self.max_concurrent_batches + 1}: "
                f"{len(wave)} batches, {len(wave_docs)} documents"
            )
            await asyncio.gather(*(self._run_one(doc, on_result) for doc in wave_docs))
            completed += len(wave_docs)

        return completed

    async def _run_one(self, doc: DocumentDescriptor, on_result: ResultFn):
        try:
            outcome = await self.fetch(doc)
        except Exception as e:
            logger.exception(f"Unexpected error fetching {doc.url}")
            outcome = FetchOutcome(success=False, errors=[f"Unexpected error: {e}"])
        await on_result(doc, outcome)
