# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import logging

from typing import Any, Callable, Mapping, Optional, Sequence, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from docrefs.config import get_settings
from docrefs.dependencies import get_service
from docrefs.errors import ConfigurationError
from docrefs.search.tokenizer import QueryTokenizer
from docrefs.store.base import ArrayUnion, DocumentRef, FieldTransform

if TYPE_CHECKING:
    from docrefs.models.item import Item
    from docrefs.models.model import Model
    from docrefs.store.transaction import Transaction


logger = logging.getLogger("docrefs.search")


class SearchIndexEntry(BaseModel):
    tokens: list[str] = []


IndexCreator = Callable[
    [Sequence[str], "Item", Mapping[str, Any], Optional[SearchIndexEntry]],
    SearchIndexEntry,
]


class SearchIndexConfig(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    properties: tuple[str, ...]
    indexer: Callable[..., SearchIndexEntry]


def search_index_id(item: "Item") -> str:
    return item.path.replace("/", get_settings().search_id_separator)


def search_index_ref(item: "Item") -> DocumentRef:
    return DocumentRef(get_settings().search_index_collection, search_index_id(item))


def create_index_entry(
    props: Sequence[str],
    item: "Item",
    state: Mapping[str, Any],
    prev: Optional[SearchIndexEntry] = None,
) -> SearchIndexEntry:
    """Tokenize the indexed properties, folding in the tokens of ``prev``."""
    tokenizer = get_service(QueryTokenizer)
    text = " ".join(
        str(state.get(name)) if state.get(name) is not None else "" for name in props
    )
    tokens = [token for group in tokenizer.tokenize(text) for token in group]

    if prev is not None:
        tokens.extend(prev.tokens)

    return SearchIndexEntry(tokens=list(dict.fromkeys(tokens)))


def index_for_search(
    model: "Model",
    props: Sequence[str],
    create_index: IndexCreator = create_index_entry,
) -> SearchIndexConfig:
    """
    Maintain a search index entry for the items of ``model``.

    Repeated declarations accumulate: the indexer of a declaration receives
    the entry built by the previous one and folds its tokens in.

    Raises:
        ConfigurationError: If a property is not declared in the model meta
    """
    props = tuple(props)

    for name in props:
        if name not in model.meta:
            raise ConfigurationError(f"{model.name}.{name} is not a declared property")

    prev = model.search

    def indexer(item: "Item", state: Mapping[str, Any]) -> SearchIndexEntry:
        return create_index(
            props, item, state, prev.indexer(item, state) if prev is not None else None
        )

    config = SearchIndexConfig(
        properties=tuple(dict.fromkeys((prev.properties if prev else ()) + props)),
        indexer=indexer,
    )

    model.mark_triggers_update_txn(props, False)
    model.search = config

    return config


async def _update_in_txn(
    txn: "Transaction", item: "Item", new_state: Mapping[str, Any], is_update: bool
) -> None:
    config = item.model.search

    if config is None or not any(item.did_update(name) for name in config.properties):
        return

    state = dict(new_state)
    previous: Optional[dict[str, Any]] = None

    for name in config.properties:
        if name in state and not isinstance(state[name], FieldTransform):
            continue

        if previous is None:
            previous = await item.read(txn) if is_update else {}

        if name in state:
            state[name] = state[name].apply(previous.get(name))
        else:
            state[name] = previous.get(name)

    entry = config.indexer(item, state)
    logger.debug(f"Indexing {item.path}: {len(entry.tokens)} token(s)")

    txn.set(
        search_index_ref(item),
        {
            "model": item.model.collection,
            "item": item.id,
            "tokens": ArrayUnion(*entry.tokens),
        },
        merge=True,
    )


async def on_search_update_item(
    item: "Item", txn: "Transaction", new_state: Mapping[str, Any]
) -> None:
    await _update_in_txn(txn, item, new_state, is_update=True)


async def on_search_add_item(
    item: "Item", txn: "Transaction", new_state: Mapping[str, Any]
) -> None:
    await _update_in_txn(txn, item, new_state, is_update=False)


async def on_search_delete_item(item: "Item", txn: "Transaction") -> None:
    if item.model.search is not None:
        txn.delete(search_index_ref(item))


async def search(model: "Model", query: str) -> list[str]:
    """
    Ids of the items of ``model`` matching ``query``.

    An item matches when its entry holds every token of at least one group
    of the query (``"red car | blue bike"``).
    """
    groups = get_service(QueryTokenizer).tokenize(query)

    if not groups:
        return []

    ids = []

    async for snapshot in model.store.scan(get_settings().search_index_collection):
        if snapshot.data.get("model") != model.collection:
            continue

        tokens = set(snapshot.data.get("tokens") or [])

        if any(all(token in tokens for token in group) for group in groups):
            ids.append(snapshot.data["item"])

    return ids


__all__ = [
    "SearchIndexEntry",
    "SearchIndexConfig",
    "IndexCreator",
    "search_index_id",
    "search_index_ref",
    "create_index_entry",
    "index_for_search",
    "on_search_update_item",
    "on_search_add_item",
    "on_search_delete_item",
    "search",
]
