# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import logging

from typing import Any, Mapping, Optional, TYPE_CHECKING

from docrefs.dependencies import get_service
from docrefs.models.item_store import ItemStore
from docrefs.store.base import DocumentRef
from docrefs.store.transaction import Transaction

if TYPE_CHECKING:
    from docrefs.models.model import Model


logger = logging.getLogger("docrefs.models")


class Item:
    """
    Handle on one record of a model.

    Lifecycle methods (``save``, ``update``, ``delete``) run the reference and
    search index hooks and the record write in one transaction. They open
    their own transaction when called without one, and join the caller's
    transaction otherwise.
    """

    def __init__(
        self,
        model: "Model",
        id: str,
        state: Mapping[str, Any] | None = None,
        local_only: bool = False,
    ):
        self.model = model
        self._id = id
        self._state: dict[str, Any] = dict(state or {})
        self._local_only = local_only
        self._dirty: frozenset[str] = frozenset()
        self._adding_txn: Optional[Transaction] = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.path}>"

    def __eq__(self, other):
        return isinstance(other, Item) and other.ref == self.ref

    def __hash__(self):
        return hash(self.ref)

    @property
    def id(self) -> str:
        return self._id

    @property
    def ref(self) -> DocumentRef:
        return self.model.ref(self._id)

    @property
    def path(self) -> str:
        return self.ref.path

    @property
    def state(self) -> dict[str, Any]:
        """Local state of an item created with ``Model.create``."""
        return dict(self._state)

    @property
    def is_local_only(self) -> bool:
        return self._local_only

    def did_update(self, name: str) -> bool:
        """Whether ``name`` is written by the lifecycle operation in progress."""
        return name in self._dirty

    async def read(self, txn: Transaction) -> dict[str, Any]:
        return await txn.get(self.ref) or {}

    async def set(self, state: Mapping[str, Any], txn: Transaction) -> None:
        """Merge ``state`` into the record, without running any hook."""
        txn.set(self.ref, state, merge=True)

    async def save(self, txn: Optional[Transaction] = None) -> "Item":
        if txn is None:
            return await self.model.store.run_transaction(self.save)

        if not self._local_only:
            return await self.update(self._state, txn)

        # Already added by this transaction, e.g. as the target of a reference.
        if self._adding_txn is txn:
            return self

        self._adding_txn = txn

        from docrefs.refs.engine import on_refs_add_item
        from docrefs.search.index import on_search_add_item

        state = dict(self._state)
        logger.debug(f"Adding {self.path}")

        # Written first so the writes of the hooks on this record land on top.
        txn.set(self.ref, state, merge=False)
        txn.on_commit(self._mark_persisted)

        self._dirty = frozenset(state)
        try:
            await on_refs_add_item(self, txn, state)
            await on_search_add_item(self, txn, state)
        finally:
            self._dirty = frozenset()

        return self

    async def update(
        self, state: Mapping[str, Any], txn: Optional[Transaction] = None
    ) -> "Item":
        if txn is None:
            return await self.model.store.run_transaction(
                lambda t: self.update(state, t)
            )

        state = dict(state)
        logger.debug(f"Updating {self.path}: {sorted(state)}")

        if self.model.triggers_update_txn(state):
            from docrefs.refs.engine import on_refs_update_item
            from docrefs.search.index import on_search_update_item

            if self.model.forces_full_update(state):
                await self.read(txn)

            self._dirty = frozenset(state)
            try:
                await on_refs_update_item(self, txn, state)
                await on_search_update_item(self, txn, state)
            finally:
                self._dirty = frozenset()

        txn.set(self.ref, state, merge=True)

        return self

    async def delete(self, txn: Optional[Transaction] = None) -> None:
        if txn is None:
            return await self.model.store.run_transaction(self.delete)

        from docrefs.refs.engine import on_refs_delete_item
        from docrefs.search.index import on_search_delete_item

        logger.debug(f"Deleting {self.path}")

        await on_refs_delete_item(self, txn)
        await on_search_delete_item(self, txn)

        txn.delete(self.ref)
        txn.on_commit(self._mark_deleted)

    def _mark_persisted(self) -> None:
        self._local_only = False
        get_service(ItemStore).discard(self.ref)

    def _mark_deleted(self) -> None:
        get_service(ItemStore).discard(self.ref)


__all__ = [
    "Item",
]
