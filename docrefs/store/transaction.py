# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import inspect

from copy import deepcopy
from typing import Any, Awaitable, Callable, Mapping, Optional, Union, TYPE_CHECKING

from docrefs.errors import StorageError
from docrefs.store.base import DocumentRef, Snapshot, Write, apply_write

if TYPE_CHECKING:
    from docrefs.store.base import DocumentStore


CommitCallback = Callable[[], Union[None, Awaitable[None]]]


class Transaction:
    """
    Unit of work against a document store.

    Reads go through a snapshot cache: the first read of a document fixes the
    version the commit is validated against, later reads see that snapshot
    with the writes already buffered by this transaction applied on top.
    Writes are only sent to the store on commit.
    """

    def __init__(self, store: "DocumentStore"):
        self.store = store
        self._snapshots: dict[DocumentRef, Optional[Snapshot]] = {}
        self._writes: list[Write] = []
        self._callbacks: list[CommitCallback] = []
        self._committed = False

    @property
    def committed(self) -> bool:
        return self._committed

    @property
    def writes(self) -> list[Write]:
        return list(self._writes)

    @property
    def read_versions(self) -> dict[DocumentRef, int]:
        return {
            ref: snapshot.version if snapshot is not None else 0
            for ref, snapshot in self._snapshots.items()
        }

    async def get(self, ref: DocumentRef) -> Optional[dict[str, Any]]:
        if ref not in self._snapshots:
            snapshot = await self.store.fetch(ref)
            # A concurrent read of the same document may have landed first.
            self._snapshots.setdefault(ref, snapshot)

        snapshot = self._snapshots[ref]
        state = deepcopy(snapshot.data) if snapshot is not None else None

        for write in self._writes:
            if write.ref == ref:
                state = apply_write(state, write)

        return state

    def set(self, ref: DocumentRef, data: Mapping[str, Any], merge: bool = True) -> None:
        self._ensure_open()
        self._writes.append(Write(ref=ref, data=dict(data), merge=merge))

    def delete(self, ref: DocumentRef) -> None:
        self._ensure_open()
        self._writes.append(Write(ref=ref, delete=True))

    def is_deleted(self, ref: DocumentRef) -> bool:
        """Whether the last write buffered for ``ref`` deletes it."""
        for write in reversed(self._writes):
            if write.ref == ref:
                return write.delete

        return False

    def on_commit(self, callback: CommitCallback) -> None:
        """Run ``callback`` once the transaction is committed."""
        self._callbacks.append(callback)

    async def commit(self) -> None:
        self._ensure_open()
        await self.store.commit(self.read_versions, self._writes)
        self._committed = True

        for callback in self._callbacks:
            result = callback()

            if inspect.isawaitable(result):
                await result

    def _ensure_open(self) -> None:
        if self._committed:
            raise StorageError("Transaction is already committed")


__all__ = [
    "Transaction",
    "CommitCallback",
]
