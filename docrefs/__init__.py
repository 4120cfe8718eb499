# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from docrefs import (
    config,
    dependencies,
    errors,
    logger,
    models,
    refs,
    search,
    store,
)
from docrefs.models import Model, PropertyMeta, PropertyType
from docrefs.refs import belongs_to, belongs_to_many, connect, track_refs
from docrefs.search import index_for_search
from docrefs.store import MemoryDocumentStore, configure_store

__all__ = [
    "config",
    "dependencies",
    "errors",
    "logger",
    "models",
    "refs",
    "search",
    "store",
    "Model",
    "PropertyMeta",
    "PropertyType",
    "belongs_to",
    "belongs_to_many",
    "connect",
    "track_refs",
    "index_for_search",
    "MemoryDocumentStore",
    "configure_store",
]
