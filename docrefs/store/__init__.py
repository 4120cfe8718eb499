# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from docrefs.store.base import (
    ArrayRemove,
    ArrayUnion,
    DocumentRef,
    DocumentStore,
    FieldTransform,
    Snapshot,
    Write,
    apply_write,
    configure_store,
    get_store,
)
from docrefs.store.transaction import Transaction
from docrefs.store.memory import MemoryDocumentStore

__all__ = [
    "ArrayRemove",
    "ArrayUnion",
    "DocumentRef",
    "DocumentStore",
    "FieldTransform",
    "Snapshot",
    "Write",
    "apply_write",
    "configure_store",
    "get_store",
    "Transaction",
    "MemoryDocumentStore",
]
