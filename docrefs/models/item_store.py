# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from typing import Optional, TYPE_CHECKING

from docrefs.dependencies import get_service
from docrefs.store.base import DocumentRef

if TYPE_CHECKING:
    from docrefs.models.item import Item


class ItemStore:
    """
    Item instances created by this process and not persisted yet.

    Items stay referenced until the transaction adding or deleting them
    commits, so a target created inline (``Author.create(...).id``) is still
    found when the referencing item is saved.
    """

    def __init__(self):
        self._items: dict[DocumentRef, "Item"] = {}

    def put(self, item: "Item") -> None:
        self._items[item.ref] = item

    def get(self, ref: DocumentRef) -> Optional["Item"]:
        return self._items.get(ref)

    def discard(self, ref: DocumentRef) -> None:
        self._items.pop(ref, None)

    def __contains__(self, ref: DocumentRef) -> bool:
        return ref in self._items

    def __len__(self) -> int:
        return len(self._items)


def get_item_from_store(ref: DocumentRef) -> Optional["Item"]:
    return get_service(ItemStore).get(ref)


__all__ = [
    "ItemStore",
    "get_item_from_store",
]
