# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from docrefs.models.meta import PropertyMeta, PropertyType
from docrefs.models.item import Item
from docrefs.models.item_store import ItemStore, get_item_from_store
from docrefs.models.model import Model

__all__ = [
    "PropertyMeta",
    "PropertyType",
    "Item",
    "ItemStore",
    "get_item_from_store",
    "Model",
]
