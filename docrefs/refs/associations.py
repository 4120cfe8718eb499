# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

"""
Declarative associations between models, built on reference tracking.

The cardinality follows from the shape of the two properties:

- scalar, no reciprocal: many-to-one, nothing maintained on the target
- scalar <-> array: one-to-many, the array lists the referencing ids
- array <-> scalar: the inverse side of a one-to-many
- array <-> array: many-to-many, both arrays are kept in sync
- scalar <-> scalar: one-to-one
"""

from typing import Optional, TYPE_CHECKING

from docrefs.errors import ConfigurationError
from docrefs.refs.actions import (
    AppendIdAction,
    BaseAction,
    DeleteItemAction,
    RemoveIdAction,
    SetIdAction,
    UnsetIdAction,
)
from docrefs.refs.registry import track_refs

if TYPE_CHECKING:
    from docrefs.models.meta import PropertyMeta
    from docrefs.models.model import Model


def _property_meta(model: "Model", name: str) -> "PropertyMeta":
    meta = model.meta.get(name)

    if meta is None:
        raise ConfigurationError(f"{model.name}.{name} is not a declared property")

    return meta


def connect(
    model1: "Model",
    prop1: str,
    model2: "Model",
    prop2: Optional[str] = None,
    delete_on_remove: bool = False,
    no_recurse: bool = False,
) -> None:
    """
    Declare that ``model1.prop1`` references records of ``model2``.

    When ``prop2`` is given, ``model2.prop2`` is maintained as the reciprocal
    side and the reciprocal declaration is registered as well. With
    ``delete_on_remove`` the referenced record is deleted when the reference
    is removed.

    Raises:
        ConfigurationError: If a property is not declared, or when
            ``delete_on_remove`` is used with an array reciprocal property

    Example:
        connect(Book, "authorId", Author, "bookIds")
        connect(Order, "invoiceId", Invoice, "orderId", delete_on_remove=True)
    """
    meta1 = _property_meta(model1, prop1)
    is_two_way = bool(prop2)
    is_array2 = is_two_way and _property_meta(model2, prop2).is_array

    if is_array2 and delete_on_remove:
        raise ConfigurationError(
            f"Cannot use delete_on_remove with array target {model2.name}.{prop2}"
        )

    add_actions: list[BaseAction] = []
    remove_actions: list[BaseAction] = []

    if is_array2:
        add_actions.append(AppendIdAction(target_property=prop2))
    elif is_two_way:
        add_actions.append(SetIdAction(target_property=prop2))

    if delete_on_remove:
        remove_actions.append(DeleteItemAction())
    elif is_array2:
        remove_actions.append(RemoveIdAction(target_property=prop2))
    elif is_two_way:
        remove_actions.append(UnsetIdAction(target_property=prop2))

    track_refs(model1, [prop1], add_actions, remove_actions)
    meta1.set_target_model(model2)

    if is_two_way and not no_recurse:
        connect(model2, prop2, model1, prop1, delete_on_remove=False, no_recurse=True)


def belongs_to(
    model1: "Model",
    prop1: str,
    model2: "Model",
    prop2: Optional[str] = None,
    delete_on_remove: bool = False,
) -> None:
    """
    Declare a one-way ownership of ``model1.prop1`` over ``model2`` records.

    Only the reference model is recorded on the property meta, no action is
    generated: nothing is maintained on ``model2`` when the reference changes.
    ``prop2`` and ``delete_on_remove`` are accepted for signature parity with
    the other builders and must be left empty.

    Raises:
        ConfigurationError: If the property is not declared, or when ``prop2``
            or ``delete_on_remove`` is given
    """
    meta1 = _property_meta(model1, prop1)

    if prop2 or delete_on_remove:
        raise ConfigurationError(
            "belongs_to declares no side effects, use connect() for reciprocal relations"
        )

    meta1.set_target_model(model2)


def belongs_to_many(
    model1: "Model",
    prop1: str,
    model2: "Model",
    prop2: str,
    delete_on_remove: bool = False,
) -> None:
    """
    Declare that the ids of ``model1.prop1`` are ``model2`` records owned by ``model1``.

    An added record gets ``prop2`` set to the owner id. A removed record is
    deleted with ``delete_on_remove``, otherwise its ``prop2`` is unset.

    Raises:
        ConfigurationError: If ``model1.prop1`` is not an array property

    Example:
        belongs_to_many(Playlist, "trackIds", Track, "playlistId", delete_on_remove=True)
    """
    meta1 = _property_meta(model1, prop1)

    if not meta1.is_array:
        raise ConfigurationError(f"{model1.name}.{prop1} must be an array property")

    track_refs(
        model1,
        [prop1],
        [SetIdAction(target_property=prop2)],
        [DeleteItemAction() if delete_on_remove else UnsetIdAction(target_property=prop2)],
    )
    meta1.set_target_model(model2)

    meta2 = model2.meta.get(prop2)

    if meta2 is not None and not meta2.is_array:
        meta2.ref_model = model1


__all__ = [
    "connect",
    "belongs_to",
    "belongs_to_many",
]
