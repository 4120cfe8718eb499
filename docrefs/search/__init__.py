# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from docrefs.search.tokenizer import QueryTokenizer
from docrefs.search.index import (
    SearchIndexConfig,
    SearchIndexEntry,
    create_index_entry,
    index_for_search,
    on_search_add_item,
    on_search_delete_item,
    on_search_update_item,
    search,
    search_index_id,
    search_index_ref,
)

__all__ = [
    "QueryTokenizer",
    "SearchIndexConfig",
    "SearchIndexEntry",
    "create_index_entry",
    "index_for_search",
    "on_search_add_item",
    "on_search_delete_item",
    "on_search_update_item",
    "search",
    "search_index_id",
    "search_index_ref",
]
