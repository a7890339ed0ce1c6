"""Abstract base class for document sources."""

import logging
from abc import ABC, abstractmethod
from typing import Generator, List

from ..models import DocumentDescriptor

logger = logging.getLogger("doc_harvester")


class BaseSource(ABC):
    name: str = ""

    @abstractmethod
    def discover(self) -> Generator[DocumentDescriptor, None, None]:
        """Yield descriptors for the documents this source can provide."""
        ...

    def collect(self) -> List[DocumentDescriptor]:
        """Run discovery to completion and return every descriptor."""
        logger.info(f"[{self.name}] Starting discovery...")
        docs = list(self.discover())
        logger.info(f"[{self.name}] Done: {len(docs)} documents discovered")
        return docs
