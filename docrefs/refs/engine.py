# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""
Reference maintenance hooks.

When a tracked property of an item changes, the ids it references are
compared before and after the write. Every id that disappeared gets the
remove actions of the property, every id that appeared gets the add actions.

Ids are processed concurrently, without any ordering guarantee between two
ids. The actions registered for one id always run one after the other, in
registration order. Removals of a property complete before its additions.
"""

import asyncio
import logging

from typing import Any, Iterable, Mapping, Optional, TYPE_CHECKING

from docrefs.errors import ConfigurationError
from docrefs.models.item_store import get_item_from_store
from docrefs.store.base import FieldTransform

if TYPE_CHECKING:
    from docrefs.models.item import Item
    from docrefs.models.model import Model
    from docrefs.refs.actions import BaseAction
    from docrefs.refs.registry import ReferenceRegistry
    from docrefs.store.transaction import Transaction


logger = logging.getLogger("docrefs.refs")


def as_ids(value: Any) -> list[Any]:
    """
    Normalize a property value to a list of ids.

    Examples:
        >>> as_ids(None)
        []
        >>> as_ids("b1")
        ['b1']
        >>> as_ids(["b1", "b2"])
        ['b1', 'b2']
    """
    if not value:
        return []

    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)

    return [value]


def diff_ids(old_ids: Iterable[Any], new_ids: Iterable[Any]) -> tuple[list[Any], list[Any]]:
    """
    Return ``(added, removed)`` ids, as set differences in first-seen order.

    Examples:
        >>> diff_ids(["a", "b"], ["b", "c"])
        (['c'], ['a'])
    """
    old = list(dict.fromkeys(old_ids))
    new = list(dict.fromkeys(new_ids))
    old_set = set(old)
    new_set = set(new)

    return [i for i in new if i not in old_set], [i for i in old if i not in new_set]


def resolve_ref_model(model: "Model", name: str) -> "Model":
    """
    Model referenced by a tracked property.

    Raises:
        ConfigurationError: If the property or its reference model is missing
    """
    meta = model.meta.get(name)

    if meta is None:
        raise ConfigurationError(f"{model.name}.{name} is not a declared property")

    ref_model = meta.target_model()

    if ref_model is None:
        raise ConfigurationError(f"{model.name}.{name} has no reference model")

    return ref_model


async def _run_actions(
    actions: Iterable["BaseAction"], txn: "Transaction", item: "Item", ref_item: "Item"
) -> None:
    for action in actions:
        await action.run(txn, item, ref_item)


async def _remove_ref(
    registry: "ReferenceRegistry", name: str, txn: "Transaction", item: "Item", id: Any
) -> None:
    ref_model = resolve_ref_model(item.model, name)

    await _run_actions(registry.remove_actions_for(name), txn, item, ref_model.item(id))


async def _add_ref(
    registry: "ReferenceRegistry", name: str, txn: "Transaction", item: "Item", id: Any
) -> None:
    ref_model = resolve_ref_model(item.model, name)
    created = get_item_from_store(ref_model.ref(id))

    if created is not None and created.is_local_only:
        await created.save(txn)

    ref_item = created if created is not None else ref_model.item(id)

    await _run_actions(registry.add_actions_for(name), txn, item, ref_item)


async def _update_property(
    registry: "ReferenceRegistry",
    name: str,
    item: "Item",
    txn: "Transaction",
    new_state: Mapping[str, Any],
    old_state: Optional[Mapping[str, Any]],
    is_update: bool,
) -> None:
    if is_update and not item.did_update(name):
        return

    if old_state is None:
        old_state = await item.read(txn)

    old_value = old_state.get(name)
    new_value = new_state.get(name)

    if isinstance(new_value, FieldTransform):
        new_value = new_value.apply(old_value)

    added, removed = diff_ids(as_ids(old_value), as_ids(new_value))

    if not added and not removed:
        return

    logger.debug(f"{item.path}.{name}: added={added} removed={removed}")

    await asyncio.gather(*(_remove_ref(registry, name, txn, item, id) for id in removed))
    await asyncio.gather(*(_add_ref(registry, name, txn, item, id) for id in added))


async def on_refs_update_item(
    item: "Item",
    txn: "Transaction",
    new_state: Mapping[str, Any],
    is_update: bool = True,
    old_state: Optional[Mapping[str, Any]] = None,
) -> None:
    """
    Run the reference actions for the write of ``new_state`` on ``item``.

    On update only the properties written by the current operation are
    considered. The previous state is read through ``txn`` unless given.
    """
    registry = item.model.refs

    if registry is None:
        return

    await asyncio.gather(
        *(
            _update_property(registry, name, item, txn, new_state, old_state, is_update)
            for name in registry.properties
        )
    )


async def on_refs_add_item(
    item: "Item", txn: "Transaction", new_state: Mapping[str, Any]
) -> None:
    await on_refs_update_item(item, txn, new_state, is_update=False, old_state={})


async def on_refs_delete_item(item: "Item", txn: "Transaction") -> None:
    await on_refs_update_item(item, txn, {}, is_update=False)


__all__ = [
    "as_ids",
    "diff_ids",
    "resolve_ref_model",
    "on_refs_update_item",
    "on_refs_add_item",
    "on_refs_delete_item",
]
