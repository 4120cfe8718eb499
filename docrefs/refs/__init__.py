# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""
Reference tracking between models.

Tracked properties hold ids of records of another model. Each time such a
property changes, the actions registered for it are run against the records
whose id was added or removed, in the same transaction as the write.
"""

from docrefs.refs.actions import (
    Action,
    AppendIdAction,
    BaseAction,
    DeleteItemAction,
    RemoveIdAction,
    SetIdAction,
    UnsetIdAction,
    apply_action,
    parse_action,
)
from docrefs.refs.registry import ReferenceRegistry, track_refs
from docrefs.refs.engine import (
    as_ids,
    diff_ids,
    on_refs_add_item,
    on_refs_delete_item,
    on_refs_update_item,
    resolve_ref_model,
)
from docrefs.refs.associations import belongs_to, belongs_to_many, connect

__all__ = [
    # Actions
    "Action",
    "AppendIdAction",
    "BaseAction",
    "DeleteItemAction",
    "RemoveIdAction",
    "SetIdAction",
    "UnsetIdAction",
    "apply_action",
    "parse_action",
    # Registry
    "ReferenceRegistry",
    "track_refs",
    # Engine
    "as_ids",
    "diff_ids",
    "on_refs_add_item",
    "on_refs_delete_item",
    "on_refs_update_item",
    "resolve_ref_model",
    # Associations
    "belongs_to",
    "belongs_to_many",
    "connect",
]
