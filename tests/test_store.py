"""
Tests for the document store primitives and transactions.
"""

import pytest

from docrefs.errors import StorageError, StoreNotConfiguredError, TransactionConflictError
from docrefs.store import (
    ArrayRemove,
    ArrayUnion,
    DocumentRef,
    MemoryDocumentStore,
    Write,
    apply_write,
    get_store,
)


REF = DocumentRef("books", "b1")


class TestFieldTransforms:

    def test_array_union_appends_missing_values(self):
        assert ArrayUnion("b", "c").apply(["a", "b"]) == ["a", "b", "c"]

    def test_array_union_on_missing_field(self):
        assert ArrayUnion("a").apply(None) == ["a"]

    def test_array_remove_drops_every_occurrence(self):
        assert ArrayRemove("a").apply(["a", "b", "a"]) == ["b"]

    def test_array_remove_on_missing_field(self):
        assert ArrayRemove("a").apply(None) == []

    def test_replaying_a_transform_changes_nothing(self):
        once = ArrayUnion("x").apply(["a"])
        assert ArrayUnion("x").apply(once) == once

        once = ArrayRemove("a").apply(["a", "b"])
        assert ArrayRemove("a").apply(once) == once

    def test_equality(self):
        assert ArrayUnion("a") == ArrayUnion("a")
        assert ArrayUnion("a") != ArrayRemove("a")


class TestApplyWrite:

    def test_merge_keeps_other_fields(self):
        assert apply_write({"a": 1, "b": 2}, Write(REF, {"b": 3})) == {"a": 1, "b": 3}

    def test_replace_drops_other_fields(self):
        assert apply_write({"a": 1, "b": 2}, Write(REF, {"b": 3}, merge=False)) == {"b": 3}

    def test_delete(self):
        assert apply_write({"a": 1}, Write(REF, delete=True)) is None

    def test_merge_on_missing_document_creates_it(self):
        assert apply_write(None, Write(REF, {"ids": ArrayUnion("x")})) == {"ids": ["x"]}

    def test_current_state_is_not_mutated(self):
        current = {"ids": ["a"]}
        apply_write(current, Write(REF, {"ids": ArrayUnion("b")}))
        assert current == {"ids": ["a"]}


class TestTransaction:

    @pytest.mark.asyncio
    async def test_reads_its_own_writes(self):
        store = MemoryDocumentStore()
        store.put(REF, {"title": "Dune"})

        txn = store.transaction()
        txn.set(REF, {"authorId": "a1"})

        assert await txn.get(REF) == {"title": "Dune", "authorId": "a1"}
        assert (await store.fetch(REF)).data == {"title": "Dune"}

    @pytest.mark.asyncio
    async def test_reads_deleted_document_as_none(self):
        store = MemoryDocumentStore()
        store.put(REF, {"title": "Dune"})

        txn = store.transaction()
        txn.delete(REF)

        assert await txn.get(REF) is None

    @pytest.mark.asyncio
    async def test_commit_applies_writes_and_bumps_version(self):
        store = MemoryDocumentStore()
        store.put(REF, {"title": "Dune"})

        txn = store.transaction()
        await txn.get(REF)
        txn.set(REF, {"ids": ArrayUnion("x")})
        txn.set(REF, {"ids": ArrayUnion("y")})
        await txn.commit()

        snapshot = await store.fetch(REF)
        assert snapshot.data == {"title": "Dune", "ids": ["x", "y"]}
        assert snapshot.version == 2

    @pytest.mark.asyncio
    async def test_commit_conflicts_when_a_read_document_changed(self):
        store = MemoryDocumentStore()
        store.put(REF, {"n": 1})

        txn = store.transaction()
        await txn.get(REF)
        store.put(REF, {"n": 2})
        txn.set(REF, {"n": 3})

        with pytest.raises(TransactionConflictError):
            await txn.commit()

        assert (await store.fetch(REF)).data == {"n": 2}

    @pytest.mark.asyncio
    async def test_commit_conflicts_when_a_missing_document_appeared(self):
        store = MemoryDocumentStore()

        txn = store.transaction()
        assert await txn.get(REF) is None
        store.put(REF, {"n": 1})

        with pytest.raises(TransactionConflictError):
            await txn.commit()

    @pytest.mark.asyncio
    async def test_blind_writes_do_not_conflict(self):
        store = MemoryDocumentStore()

        txn = store.transaction()
        txn.set(REF, {"n": 3})
        store.put(REF, {"n": 2})
        await txn.commit()

        assert (await store.fetch(REF)).data == {"n": 3}

    @pytest.mark.asyncio
    async def test_committed_transaction_rejects_writes(self):
        txn = MemoryDocumentStore().transaction()
        await txn.commit()

        with pytest.raises(StorageError):
            txn.set(REF, {"n": 1})

    def test_is_deleted_follows_the_last_write(self):
        txn = MemoryDocumentStore().transaction()
        assert not txn.is_deleted(REF)

        txn.delete(REF)
        assert txn.is_deleted(REF)
        assert not txn.is_deleted(DocumentRef("books", "b2"))

        txn.set(REF, {"n": 1}, merge=False)
        assert not txn.is_deleted(REF)

    @pytest.mark.asyncio
    async def test_commit_callbacks_run_after_commit_only(self):
        store = MemoryDocumentStore()
        calls = []

        txn = store.transaction()
        txn.on_commit(lambda: calls.append("sync"))

        async def async_callback():
            calls.append("async")

        txn.on_commit(async_callback)
        assert calls == []

        await txn.commit()
        assert calls == ["sync", "async"]

    @pytest.mark.asyncio
    async def test_commit_callbacks_skipped_on_conflict(self):
        store = MemoryDocumentStore()
        calls = []

        txn = store.transaction()
        await txn.get(REF)
        txn.on_commit(lambda: calls.append("called"))
        store.put(REF, {"n": 1})

        with pytest.raises(TransactionConflictError):
            await txn.commit()

        assert calls == []


class TestRunTransaction:

    @pytest.mark.asyncio
    async def test_retries_the_callback_on_conflict(self):
        store = MemoryDocumentStore(max_attempts=3)
        store.put(REF, {"n": 0})
        seen = []

        async def increment(txn):
            state = await txn.get(REF)
            seen.append(state["n"])

            if len(seen) == 1:
                store.put(REF, {"n": 10})

            txn.set(REF, {"n": state["n"] + 1})
            return state["n"] + 1

        assert await store.run_transaction(increment) == 11
        assert seen == [0, 10]
        assert (await store.fetch(REF)).data == {"n": 11}

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        store = MemoryDocumentStore(max_attempts=2)
        attempts = []

        async def always_conflicts(txn):
            attempts.append(1)
            await txn.get(REF)
            store.put(REF, {"n": len(attempts)})
            txn.set(REF, {"n": -1})

        with pytest.raises(TransactionConflictError):
            await store.run_transaction(always_conflicts)

        assert len(attempts) == 2
        assert (await store.fetch(REF)).data == {"n": 2}

    @pytest.mark.asyncio
    async def test_max_attempts_defaults_to_settings(self, monkeypatch):
        monkeypatch.setenv("DOCREFS_TRANSACTION_MAX_ATTEMPTS", "3")
        store = MemoryDocumentStore()
        attempts = []

        async def always_conflicts(txn):
            attempts.append(1)
            await txn.get(REF)
            store.put(REF, {"n": len(attempts)})

        with pytest.raises(TransactionConflictError):
            await store.run_transaction(always_conflicts)

        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_error_aborts_without_commit(self):
        store = MemoryDocumentStore()

        async def failing(txn):
            txn.set(REF, {"n": 1})
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.run_transaction(failing)

        assert await store.fetch(REF) is None
        assert store.commits == 0


class TestMemoryDocumentStore:

    @pytest.mark.asyncio
    async def test_scan_lists_one_collection(self):
        store = MemoryDocumentStore()
        store.put(DocumentRef("books", "b1"), {"title": "Dune"})
        store.put(DocumentRef("books", "b2"), {"title": "Emma"})
        store.put(DocumentRef("authors", "a1"), {"name": "Frank"})

        keys = sorted([snapshot.ref.key async for snapshot in store.scan("books")])

        assert keys == ["b1", "b2"]

    @pytest.mark.asyncio
    async def test_fetch_returns_a_copy(self):
        store = MemoryDocumentStore()
        store.put(REF, {"ids": ["a"]})

        snapshot = await store.fetch(REF)
        snapshot.data["ids"].append("b")

        assert (await store.fetch(REF)).data == {"ids": ["a"]}


def test_get_store_requires_configuration():
    with pytest.raises(StoreNotConfiguredError):
        get_store()


def test_get_store_returns_configured_store(store):
    assert get_store() is store
