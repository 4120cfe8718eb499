# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""
Document store primitives.

Documents are JSON-like mappings addressed by ``collection/key``. Every
document carries a version number bumped on each committed write, which the
transactions use for optimistic concurrency control: a transaction records
the version of every document it reads and the commit fails with
``TransactionConflictError`` if one of them changed meanwhile.
"""

import logging

from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    TypeVar,
    TYPE_CHECKING,
)

from docrefs.errors import TransactionConflictError

if TYPE_CHECKING:
    from docrefs.store.transaction import Transaction


T = TypeVar("T")

logger = logging.getLogger("docrefs.store")


@dataclass(frozen=True)
class DocumentRef:
    collection: str
    key: str

    @property
    def path(self) -> str:
        return f"{self.collection}/{self.key}"

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class Snapshot:
    ref: DocumentRef
    data: dict[str, Any]
    version: int


class FieldTransform(ABC):
    """Value applied server side against the current value of a field."""

    def __init__(self, *values: Any):
        self.values = tuple(values)

    @abstractmethod
    def apply(self, current: Any) -> Any: ...

    def __eq__(self, other):
        return type(other) is type(self) and other.values == self.values

    def __hash__(self):
        return hash((type(self).__name__, self.values))

    def __repr__(self):
        args = ", ".join(repr(v) for v in self.values)
        return f"{type(self).__name__}({args})"


class ArrayUnion(FieldTransform):
    """Append the values missing from the array field."""

    def apply(self, current: Any) -> list[Any]:
        result = list(current) if isinstance(current, (list, tuple)) else []

        for value in self.values:
            if value not in result:
                result.append(value)

        return result


class ArrayRemove(FieldTransform):
    """Remove every occurrence of the values from the array field."""

    def apply(self, current: Any) -> list[Any]:
        if not isinstance(current, (list, tuple)):
            return []

        return [value for value in current if value not in self.values]


@dataclass(frozen=True)
class Write:
    ref: DocumentRef
    data: Optional[Mapping[str, Any]] = None
    merge: bool = True
    delete: bool = False


def apply_write(
    current: Optional[Mapping[str, Any]], write: Write
) -> Optional[dict[str, Any]]:
    """Return the state of a document after the write, ``None`` if deleted."""
    if write.delete:
        return None

    result: dict[str, Any] = deepcopy(dict(current)) if current and write.merge else {}

    for name, value in (write.data or {}).items():
        if isinstance(value, FieldTransform):
            result[name] = value.apply(result.get(name))
        else:
            result[name] = deepcopy(value)

    return result


@dataclass
class PendingCommit:
    """Writes of a transaction grouped per document, in write order."""

    writes: dict[DocumentRef, list[Write]] = field(default_factory=dict)

    @classmethod
    def from_writes(cls, writes: list[Write]) -> "PendingCommit":
        pending = cls()

        for write in writes:
            pending.writes.setdefault(write.ref, []).append(write)

        return pending

    def resolve(
        self, ref: DocumentRef, current: Optional[Mapping[str, Any]]
    ) -> Optional[dict[str, Any]]:
        state = dict(current) if current is not None else None

        for write in self.writes[ref]:
            state = apply_write(state, write)

        return state


class DocumentStore(ABC):
    """Transactional document store."""

    max_attempts: Optional[int] = None

    @abstractmethod
    async def fetch(self, ref: DocumentRef) -> Optional[Snapshot]:
        """Read the committed state of a document, ``None`` if absent."""

    @abstractmethod
    async def commit(
        self, read_versions: Mapping[DocumentRef, int], writes: list[Write]
    ) -> None:
        """
        Atomically apply the writes.

        Raises:
            TransactionConflictError: If the version of a read document changed
        """

    @abstractmethod
    def scan(self, collection: str) -> AsyncIterator[Snapshot]:
        """Iterate over the committed documents of a collection."""

    def transaction(self) -> "Transaction":
        from docrefs.store.transaction import Transaction

        return Transaction(self)

    async def run_transaction(
        self,
        fn: Callable[["Transaction"], Awaitable[T]],
        max_attempts: Optional[int] = None,
    ) -> T:
        """
        Run ``fn`` in a transaction and commit it.

        The whole callback is replayed on conflict, so it must only act
        through the transaction it receives.

        Raises:
            TransactionConflictError: When every attempt conflicted
        """
        if max_attempts is None:
            max_attempts = self.max_attempts or _default_max_attempts()

        for attempt in range(1, max_attempts + 1):
            txn = self.transaction()
            result = await fn(txn)

            try:
                await txn.commit()
            except TransactionConflictError as e:
                if attempt == max_attempts:
                    raise TransactionConflictError(
                        f"Transaction aborted after {attempt} attempts: {e}"
                    ) from e

                logger.warning(f"Transaction conflict (attempt {attempt}/{max_attempts}): {e}")
                continue

            return result

        raise TransactionConflictError("Transaction was never attempted")


def _default_max_attempts() -> int:
    from docrefs.config import get_settings

    return get_settings().transaction_max_attempts


def configure_store(store: DocumentStore) -> DocumentStore:
    """Register the store used by models without an explicit one."""
    from docrefs.dependencies import register_service

    register_service(store, DocumentStore, force=True)

    return store


def get_store() -> DocumentStore:
    from docrefs.dependencies import get_service, has_service
    from docrefs.errors import StoreNotConfiguredError

    if not has_service(DocumentStore):
        raise StoreNotConfiguredError(
            "No document store configured, call configure_store() first"
        )

    return get_service(DocumentStore)


__all__ = [
    "DocumentRef",
    "Snapshot",
    "FieldTransform",
    "ArrayUnion",
    "ArrayRemove",
    "Write",
    "apply_write",
    "PendingCommit",
    "DocumentStore",
    "configure_store",
    "get_store",
]
