# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import asyncio
import logging

from copy import deepcopy
from typing import Any, AsyncIterator, Mapping, Optional

from docrefs.errors import TransactionConflictError
from docrefs.store.base import DocumentRef, DocumentStore, PendingCommit, Snapshot, Write

logger = logging.getLogger("docrefs.store.memory")


class MemoryDocumentStore(DocumentStore):
    """Process local document store, mostly useful for tests and prototypes."""

    def __init__(self, max_attempts: Optional[int] = None):
        self.max_attempts = max_attempts
        self._documents: dict[DocumentRef, tuple[dict[str, Any], int]] = {}
        self._lock = asyncio.Lock()
        self.commits = 0

    async def fetch(self, ref: DocumentRef) -> Optional[Snapshot]:
        document = self._documents.get(ref)

        if document is None:
            return None

        data, version = document

        return Snapshot(ref=ref, data=deepcopy(data), version=version)

    async def commit(
        self, read_versions: Mapping[DocumentRef, int], writes: list[Write]
    ) -> None:
        async with self._lock:
            for ref, version in read_versions.items():
                current = self._version(ref)

                if current != version:
                    raise TransactionConflictError(
                        f"{ref.path} changed (read version {version}, current {current})"
                    )

            pending = PendingCommit.from_writes(writes)

            for ref in pending.writes:
                document = self._documents.get(ref)
                state = pending.resolve(ref, document[0] if document else None)

                if state is None:
                    self._documents.pop(ref, None)
                else:
                    self._documents[ref] = (state, self._version(ref) + 1)

            self.commits += 1

        logger.debug(f"Committed {len(writes)} write(s) on {len(pending.writes)} document(s)")

    async def scan(self, collection: str) -> AsyncIterator[Snapshot]:
        for ref in list(self._documents):
            if ref.collection != collection:
                continue

            snapshot = await self.fetch(ref)

            if snapshot is not None:
                yield snapshot

    def put(self, ref: DocumentRef, data: Mapping[str, Any]) -> None:
        """Write a document outside of any transaction (fixtures, imports)."""
        self._documents[ref] = (deepcopy(dict(data)), self._version(ref) + 1)

    def _version(self, ref: DocumentRef) -> int:
        document = self._documents.get(ref)

        return document[1] if document else 0


__all__ = [
    "MemoryDocumentStore",
]
