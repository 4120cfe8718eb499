# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import uuid

from typing import Any, Iterable, Mapping, Optional, TYPE_CHECKING

from docrefs.dependencies import get_service
from docrefs.models.item import Item
from docrefs.models.item_store import ItemStore
from docrefs.models.meta import PropertyMeta
from docrefs.store.base import DocumentRef, DocumentStore, get_store

if TYPE_CHECKING:
    from docrefs.refs.registry import ReferenceRegistry
    from docrefs.search.index import SearchIndexConfig


class Model:
    """
    Descriptor of a collection of items.

    Holds the property metadata and the declarations attached at definition
    time: the reference registry (``refs``), the search index configuration
    (``search``) and the properties whose writes must run the update hooks
    (``update_triggers``).

    Example:
        Author = Model("authors", {"bookIds": PropertyMeta.array()})
        Book = Model("books", {"authorId": PropertyMeta.ref(), "title": PropertyMeta()})

        connect(Book, "authorId", Author, "bookIds")
        index_for_search(Book, ["title"])
    """

    item_class: type[Item] = Item

    def __init__(
        self,
        name: str,
        meta: Mapping[str, PropertyMeta] | None = None,
        collection: str | None = None,
        store: DocumentStore | None = None,
    ):
        self.name = name
        self.collection = collection or name
        self.meta: dict[str, PropertyMeta] = dict(meta or {})
        self.refs: Optional["ReferenceRegistry"] = None
        self.search: Optional["SearchIndexConfig"] = None
        self.update_triggers: dict[str, bool] = {}
        self._store = store

    def __repr__(self) -> str:
        return f"Model({self.name!r})"

    @property
    def store(self) -> DocumentStore:
        return self._store or get_store()

    def ref(self, id: str) -> DocumentRef:
        return DocumentRef(self.collection, id)

    def item(self, id: str) -> Item:
        """Handle on a persisted (or not yet existing) item."""
        return self.item_class(self, id)

    def create(self, state: Mapping[str, Any] | None = None, id: str | None = None) -> Item:
        """New local-only item, persisted by ``save()``."""
        item = self.item_class(self, id or uuid.uuid4().hex, state, local_only=True)
        get_service(ItemStore).put(item)

        return item

    async def get(self, id: str) -> Optional[dict[str, Any]]:
        """Committed state of an item, ``None`` if it does not exist."""
        snapshot = await self.store.fetch(self.ref(id))

        return snapshot.data if snapshot is not None else None

    def mark_triggers_update_txn(
        self, properties: Iterable[str], forces_full_update: bool
    ) -> None:
        for name in properties:
            self.update_triggers[name] = (
                self.update_triggers.get(name, False) or forces_full_update
            )

    def triggers_update_txn(self, properties: Iterable[str]) -> bool:
        return any(name in self.update_triggers for name in properties)

    def forces_full_update(self, properties: Iterable[str]) -> bool:
        return any(self.update_triggers.get(name, False) for name in properties)


__all__ = [
    "Model",
]
