"""
Tests for the reference actions.
"""

import pytest

from pydantic import ValidationError

from docrefs.errors import UnimplementedActionError
from docrefs.models import Model, PropertyMeta
from docrefs.refs.actions import (
    AppendIdAction,
    BaseAction,
    DeleteItemAction,
    RemoveIdAction,
    SetIdAction,
    UnsetIdAction,
    apply_action,
    parse_action,
)


@pytest.fixture
def models(store):
    Author = Model("authors", {"name": PropertyMeta(), "bookIds": PropertyMeta.array()})
    Book = Model("books", {"title": PropertyMeta(), "authorId": PropertyMeta.ref()})
    return Author, Book


async def run_twice(store, action, item, ref_item):
    """Apply the action in two successive transactions, like a replayed write."""
    for _ in range(2):
        await store.run_transaction(lambda txn: action.run(txn, item, ref_item))


class TestActionEffects:

    @pytest.mark.asyncio
    async def test_append_id_adds_source_id_once(self, store, models):
        Author, Book = models
        store.put(Author.ref("a1"), {"bookIds": ["b0"]})

        await run_twice(store, AppendIdAction(target_property="bookIds"), Book.item("b1"), Author.item("a1"))

        assert await Author.get("a1") == {"bookIds": ["b0", "b1"]}

    @pytest.mark.asyncio
    async def test_set_id_overwrites_scalar(self, store, models):
        Author, Book = models
        store.put(Book.ref("b1"), {"title": "Dune", "authorId": "old"})

        await run_twice(store, SetIdAction(target_property="authorId"), Author.item("a1"), Book.item("b1"))

        assert await Book.get("b1") == {"title": "Dune", "authorId": "a1"}

    @pytest.mark.asyncio
    async def test_remove_id_removes_source_id_only(self, store, models):
        Author, Book = models
        store.put(Author.ref("a1"), {"bookIds": ["b0", "b1"]})

        await run_twice(store, RemoveIdAction(target_property="bookIds"), Book.item("b1"), Author.item("a1"))

        assert await Author.get("a1") == {"bookIds": ["b0"]}

    @pytest.mark.asyncio
    async def test_unset_id_sets_null(self, store, models):
        Author, Book = models
        store.put(Book.ref("b1"), {"title": "Dune", "authorId": "a1"})

        await run_twice(store, UnsetIdAction(target_property="authorId"), Author.item("a1"), Book.item("b1"))

        assert await Book.get("b1") == {"title": "Dune", "authorId": None}

    @pytest.mark.asyncio
    async def test_delete_item_deletes_target(self, store, models):
        Author, Book = models
        store.put(Book.ref("b1"), {"title": "Dune"})

        await run_twice(store, DeleteItemAction(), Author.item("a1"), Book.item("b1"))

        assert await Book.get("b1") is None

    @pytest.mark.asyncio
    async def test_delete_item_on_absent_record_writes_nothing(self, store, models):
        Author, Book = models

        await store.run_transaction(
            lambda txn: DeleteItemAction().run(txn, Author.item("a1"), Book.item("missing"))
        )

        assert store.commits == 1
        assert [s async for s in store.scan("books")] == []


    @pytest.mark.asyncio
    async def test_writes_do_not_recreate_a_record_deleted_in_the_transaction(self, store, models):
        Author, Book = models
        store.put(Book.ref("b1"), {"title": "Dune", "authorId": "a1"})

        async def delete_then_unset(txn):
            await Book.item("b1").delete(txn)
            await UnsetIdAction(target_property="authorId").run(txn, Author.item("a1"), Book.item("b1"))
            await AppendIdAction(target_property="tagIds").run(txn, Author.item("a1"), Book.item("b1"))

        await store.run_transaction(delete_then_unset)

        assert await Book.get("b1") is None


class TestBaseAction:

    @pytest.mark.asyncio
    async def test_abstract_action_is_not_runnable(self, store, models):
        Author, Book = models
        txn = store.transaction()

        with pytest.raises(UnimplementedActionError):
            await BaseAction().run(txn, Author.item("a1"), Book.item("b1"))

    @pytest.mark.asyncio
    async def test_unknown_subclass_is_not_runnable(self, store, models):
        Author, Book = models

        class CustomAction(BaseAction):
            kind: str = "custom"

        with pytest.raises(UnimplementedActionError):
            await apply_action(CustomAction(), store.transaction(), Author.item("a1"), Book.item("b1"))

    def test_actions_are_frozen(self):
        action = SetIdAction(target_property="authorId")

        with pytest.raises(ValidationError):
            action.target_property = "other"

    def test_actions_compare_by_value(self):
        assert AppendIdAction(target_property="x") == AppendIdAction(target_property="x")
        assert AppendIdAction(target_property="x") != RemoveIdAction(target_property="x")


class TestParseAction:

    def test_parse_by_kind(self):
        assert parse_action({"kind": "append_id", "target_property": "bookIds"}) == AppendIdAction(
            target_property="bookIds"
        )
        assert isinstance(parse_action({"kind": "delete_item"}), DeleteItemAction)

    def test_instances_are_kept(self):
        action = UnsetIdAction(target_property="authorId")
        assert parse_action(action) is action

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_action({"kind": "explode", "target_property": "x"})

    def test_target_property_is_required(self):
        with pytest.raises(ValidationError):
            parse_action({"kind": "set_id"})
