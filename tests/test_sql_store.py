"""
Tests for the edgy backed document store, on a SQLite file.
"""

import pytest
import pytest_asyncio

pytest.importorskip("aiosqlite")

from docrefs.errors import StorageError, TransactionConflictError
from docrefs.models import Model, PropertyMeta
from docrefs.refs import connect
from docrefs.store import ArrayUnion, DocumentRef, configure_store
from docrefs.store.sql import EdgyDocumentStore


REF = DocumentRef("books", "b1")


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    store = EdgyDocumentStore(f"sqlite:///{tmp_path}/docs.db")

    async with store:
        yield store


def test_database_url_is_required():
    with pytest.raises(StorageError):
        EdgyDocumentStore()


class TestEdgyDocumentStore:

    @pytest.mark.asyncio
    async def test_missing_document(self, sql_store):
        assert await sql_store.fetch(REF) is None

    @pytest.mark.asyncio
    async def test_commit_creates_then_updates(self, sql_store):
        txn = sql_store.transaction()
        txn.set(REF, {"title": "Dune", "tags": ArrayUnion("sf")}, merge=False)
        await txn.commit()

        snapshot = await sql_store.fetch(REF)
        assert snapshot.data == {"title": "Dune", "tags": ["sf"]}
        assert snapshot.version == 1

        txn = sql_store.transaction()
        await txn.get(REF)
        txn.set(REF, {"tags": ArrayUnion("classic")})
        await txn.commit()

        snapshot = await sql_store.fetch(REF)
        assert snapshot.data == {"title": "Dune", "tags": ["sf", "classic"]}
        assert snapshot.version == 2

    @pytest.mark.asyncio
    async def test_conflicting_commit_is_rejected(self, sql_store):
        await sql_store.run_transaction(_write({"n": 1}))

        first = sql_store.transaction()
        await first.get(REF)

        second = sql_store.transaction()
        await second.get(REF)
        second.set(REF, {"n": 2})
        await second.commit()

        first.set(REF, {"n": 3})

        with pytest.raises(TransactionConflictError):
            await first.commit()

        assert (await sql_store.fetch(REF)).data == {"n": 2}

    @pytest.mark.asyncio
    async def test_delete(self, sql_store):
        await sql_store.run_transaction(_write({"n": 1}))

        txn = sql_store.transaction()
        txn.delete(REF)
        await txn.commit()

        assert await sql_store.fetch(REF) is None

    @pytest.mark.asyncio
    async def test_scan(self, sql_store):
        txn = sql_store.transaction()
        txn.set(DocumentRef("books", "b1"), {"title": "Dune"})
        txn.set(DocumentRef("books", "b2"), {"title": "Emma"})
        txn.set(DocumentRef("authors", "a1"), {"name": "Frank"})
        await txn.commit()

        keys = sorted([snapshot.ref.key async for snapshot in sql_store.scan("books")])

        assert keys == ["b1", "b2"]

    @pytest.mark.asyncio
    async def test_references_are_maintained(self, sql_store):
        configure_store(sql_store)
        Author = Model("authors", {"bookIds": PropertyMeta.array()})
        Book = Model("books", {"authorId": PropertyMeta.ref()})
        connect(Book, "authorId", Author, "bookIds")

        author = Author.create({})
        book = Book.create({"authorId": author.id})
        await book.save()

        assert await Author.get(author.id) == {"bookIds": [book.id]}

        await Book.item(book.id).delete()

        assert await Author.get(author.id) == {"bookIds": []}
        assert await Book.get(book.id) is None


def _write(data):
    async def write(txn):
        txn.set(REF, data)

    return write
