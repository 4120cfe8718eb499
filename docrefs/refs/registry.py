# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from typing import Any, Iterable, Mapping, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from docrefs.errors import ConfigurationError
from docrefs.refs.actions import BaseAction, parse_action

if TYPE_CHECKING:
    from docrefs.models.model import Model


ActionList = tuple[BaseAction, ...]


class ReferenceRegistry(BaseModel):
    """
    Tracked properties of a model and the actions run when their references change.

    Registries are immutable: ``merge`` returns a new registry, leaving the
    previous one untouched.
    """

    model_config = ConfigDict(frozen=True)

    properties: tuple[str, ...] = ()
    add_actions: dict[str, ActionList] = {}
    remove_actions: dict[str, ActionList] = {}

    def merge(
        self,
        properties: Iterable[str],
        add_actions: Iterable[BaseAction | Mapping[str, Any]],
        remove_actions: Iterable[BaseAction | Mapping[str, Any]],
    ) -> "ReferenceRegistry":
        """
        Add tracked properties, appending the actions after the existing ones.

        The same action lists apply to every given property.
        """
        properties = tuple(properties)
        added = tuple(parse_action(action) for action in add_actions)
        removed = tuple(parse_action(action) for action in remove_actions)

        return ReferenceRegistry(
            properties=tuple(dict.fromkeys(self.properties + properties)),
            add_actions={
                **self.add_actions,
                **{name: self.add_actions.get(name, ()) + added for name in properties},
            },
            remove_actions={
                **self.remove_actions,
                **{name: self.remove_actions.get(name, ()) + removed for name in properties},
            },
        )

    def add_actions_for(self, name: str) -> ActionList:
        return self.add_actions.get(name, ())

    def remove_actions_for(self, name: str) -> ActionList:
        return self.remove_actions.get(name, ())


def track_refs(
    model: "Model",
    properties: Iterable[str],
    add_actions: Iterable[BaseAction | Mapping[str, Any]],
    remove_actions: Iterable[BaseAction | Mapping[str, Any]],
) -> ReferenceRegistry:
    """
    Track reference changes on ``properties`` of ``model``.

    Declarations accumulate: calling it again for a property appends the new
    actions after the ones already registered.

    Raises:
        ConfigurationError: If a property is not declared in the model meta
    """
    properties = list(properties)

    for name in properties:
        if name not in model.meta:
            raise ConfigurationError(f"{model.name}.{name} is not a declared property")

    registry = (model.refs or ReferenceRegistry()).merge(
        properties, add_actions, remove_actions
    )

    model.refs = registry
    model.mark_triggers_update_txn(properties, True)

    return registry


__all__ = [
    "ActionList",
    "ReferenceRegistry",
    "track_refs",
]
