# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""
Actions applied to a referenced record when a reference is added or removed.

Every action performs a single write which can be replayed safely, since a
transaction may be retried from the start:

- AppendIdAction - add the source id to an array property (set union)
- SetIdAction - set a scalar property to the source id
- RemoveIdAction - remove the source id from an array property
- UnsetIdAction - set a scalar property to null
- DeleteItemAction - delete the referenced record
"""

import logging

from typing import Annotated, Any, Literal, Mapping, Union, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from docrefs.errors import UnimplementedActionError
from docrefs.store.base import ArrayRemove, ArrayUnion

if TYPE_CHECKING:
    from docrefs.models.item import Item
    from docrefs.store.transaction import Transaction


logger = logging.getLogger("docrefs.refs.actions")


class BaseAction(BaseModel):
    """
    Unit of compensating work run against a referenced record.

    Concrete behavior is provided by the variants below through
    ``apply_action``. Subclasses outside of this module may override ``run``.
    """

    model_config = ConfigDict(frozen=True)

    kind: str = "abstract"
    target_property: str | None = None

    async def run(self, txn: "Transaction", item: "Item", ref_item: "Item") -> None:
        await apply_action(self, txn, item, ref_item)


class AppendIdAction(BaseAction):
    kind: Literal["append_id"] = "append_id"
    target_property: str


class SetIdAction(BaseAction):
    kind: Literal["set_id"] = "set_id"
    target_property: str


class RemoveIdAction(BaseAction):
    kind: Literal["remove_id"] = "remove_id"
    target_property: str


class UnsetIdAction(BaseAction):
    kind: Literal["unset_id"] = "unset_id"
    target_property: str


class DeleteItemAction(BaseAction):
    kind: Literal["delete_item"] = "delete_item"


Action = Annotated[
    Union[AppendIdAction, SetIdAction, RemoveIdAction, UnsetIdAction, DeleteItemAction],
    Field(discriminator="kind"),
]

_action_adapter: TypeAdapter[Action] = TypeAdapter(Action)

WRITE_ACTIONS = (AppendIdAction, SetIdAction, RemoveIdAction, UnsetIdAction)


def parse_action(data: Mapping[str, Any] | BaseAction) -> BaseAction:
    """
    Build an action from its serialized form.

    Examples:
        >>> parse_action({"kind": "append_id", "target_property": "bookIds"})
        AppendIdAction(kind='append_id', target_property='bookIds')
    """
    if isinstance(data, BaseAction):
        return data

    return _action_adapter.validate_python(data)


async def apply_action(
    action: BaseAction, txn: "Transaction", item: "Item", ref_item: "Item"
) -> None:
    """
    Apply ``action`` on ``ref_item`` on behalf of ``item``.

    Raises:
        UnimplementedActionError: If the action is not one of the variants
    """
    logger.debug(f"{action.kind} {ref_item.path}.{action.target_property} <- {item.id}")

    if isinstance(action, WRITE_ACTIONS) and txn.is_deleted(ref_item.ref):
        # A write would re-create the record deleted earlier in the transaction.
        logger.debug(f"Skipping {action.kind}, {ref_item.path} is deleted")
        return

    if isinstance(action, AppendIdAction):
        await ref_item.set({action.target_property: ArrayUnion(item.id)}, txn)

    elif isinstance(action, SetIdAction):
        await ref_item.set({action.target_property: item.id}, txn)

    elif isinstance(action, RemoveIdAction):
        await ref_item.set({action.target_property: ArrayRemove(item.id)}, txn)

    elif isinstance(action, UnsetIdAction):
        await ref_item.set({action.target_property: None}, txn)

    elif isinstance(action, DeleteItemAction):
        if await txn.get(ref_item.ref) is not None:
            await ref_item.delete(txn)

    else:
        raise UnimplementedActionError(f"{type(action).__name__}.run is not implemented")


__all__ = [
    "BaseAction",
    "AppendIdAction",
    "SetIdAction",
    "RemoveIdAction",
    "UnsetIdAction",
    "DeleteItemAction",
    "Action",
    "parse_action",
    "apply_action",
]
