# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import asyncio
import logging

from typing import Any, AsyncIterator, Mapping, Optional

import edgy

from edgy import Registry

from docrefs.config import BaseSettings, get_settings
from docrefs.errors import StorageError, TransactionConflictError
from docrefs.store.base import DocumentRef, DocumentStore, PendingCommit, Snapshot, Write

logger = logging.getLogger("docrefs.store.sql")


def build_document_model(registry: Registry, tablename: str) -> type[edgy.Model]:
    """Declare the table holding the documents on the given registry."""
    document_registry = registry
    document_tablename = tablename

    class StoredDocument(edgy.Model):
        collection: str = edgy.CharField(max_length=255, index=True)
        doc_key: str = edgy.CharField(max_length=255)
        payload: dict[str, Any] = edgy.JSONField(default=dict)
        version: int = edgy.IntegerField(default=1)

        class Meta:
            registry = document_registry
            tablename = document_tablename
            unique_together = [("collection", "doc_key")]

    return StoredDocument


class EdgyDocumentStore(DocumentStore):
    """
    Document store backed by a SQL database through edgy.

    Documents live in a single table as JSON payloads. Reads are performed
    outside of any database transaction; the commit opens one, validates the
    versions of the documents read by the transaction and applies the writes.

    Example:
        store = EdgyDocumentStore("sqlite:///data/documents.db")

        async with store:
            configure_store(store)
            await item.save()
    """

    def __init__(
        self,
        database_url: str | None = None,
        registry: Registry | None = None,
        settings: BaseSettings | None = None,
        max_attempts: Optional[int] = None,
    ):
        self.settings = settings or get_settings()
        self.max_attempts = max_attempts or self.settings.transaction_max_attempts

        if registry is None:
            url = database_url or self.settings.database_url

            if not url:
                raise StorageError("DATABASE_URL is required by the SQL document store")

            registry = Registry(database=url)

        self.registry = registry
        self.document_model = build_document_model(registry, self.settings.documents_table)
        self._read_lock = asyncio.Lock()

    @property
    def database(self):
        return self.registry.database

    async def connect(self) -> None:
        await self.database.connect()
        await self.registry.create_all()

    async def disconnect(self) -> None:
        await self.database.disconnect()

    async def __aenter__(self) -> "EdgyDocumentStore":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    async def fetch(self, ref: DocumentRef) -> Optional[Snapshot]:
        async with self._read_lock:
            row = await self._get_row(ref)

        if row is None:
            return None

        return Snapshot(ref=ref, data=dict(row.payload or {}), version=row.version)

    async def commit(
        self, read_versions: Mapping[DocumentRef, int], writes: list[Write]
    ) -> None:
        pending = PendingCommit.from_writes(writes)
        options = {}

        if self.settings.database_isolation_level:
            options["isolation_level"] = self.settings.database_isolation_level

        async with self._read_lock:
            async with self.database.transaction(**options):
                rows = {}

                for ref, version in read_versions.items():
                    row = await self._get_row(ref)
                    current = row.version if row is not None else 0

                    if current != version:
                        raise TransactionConflictError(
                            f"{ref.path} changed (read version {version}, current {current})"
                        )

                    rows[ref] = row

                for ref in pending.writes:
                    row = rows[ref] if ref in rows else await self._get_row(ref)
                    state = pending.resolve(ref, row.payload if row is not None else None)

                    if state is None:
                        if row is not None:
                            await row.delete()
                    elif row is None:
                        await self.document_model.query.create(
                            collection=ref.collection, doc_key=ref.key, payload=state, version=1
                        )
                    else:
                        row.payload = state
                        row.version = row.version + 1
                        await row.save()

        logger.debug(f"Committed {len(writes)} write(s) on {len(pending.writes)} document(s)")

    async def scan(self, collection: str) -> AsyncIterator[Snapshot]:
        async with self._read_lock:
            rows = await self.document_model.query.filter(collection=collection).all()

        for row in rows:
            yield Snapshot(
                ref=DocumentRef(collection, row.doc_key),
                data=dict(row.payload or {}),
                version=row.version,
            )

    async def _get_row(self, ref: DocumentRef):
        return await self.document_model.query.filter(
            collection=ref.collection, doc_key=ref.key
        ).first()


__all__ = [
    "EdgyDocumentStore",
    "build_document_model",
]
