# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

from enum import Enum
from typing import Any, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from docrefs.models.model import Model


class PropertyType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    MAP = "map"
    REF = "ref"
    ARRAY = "array"


class PropertyMeta(BaseModel):
    """
    Shape of a model property.

    ``ref_model`` is the model referenced by a scalar reference, the element
    shape of an array is described by ``array_type``. Both are usually filled
    by the association builders rather than declared by hand.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: PropertyType = PropertyType.STRING
    ref_model: Optional[Any] = None
    array_type: Optional["PropertyMeta"] = None

    @classmethod
    def ref(cls, ref_model: Optional["Model"] = None) -> "PropertyMeta":
        return cls(type=PropertyType.REF, ref_model=ref_model)

    @classmethod
    def array(cls, ref_model: Optional["Model"] = None) -> "PropertyMeta":
        return cls(
            type=PropertyType.ARRAY,
            array_type=cls(type=PropertyType.REF, ref_model=ref_model),
        )

    @property
    def is_array(self) -> bool:
        return self.type == PropertyType.ARRAY

    def target_model(self) -> Optional["Model"]:
        """Model referenced by the property or by its elements."""
        if self.is_array:
            return self.array_type.ref_model if self.array_type else None

        return self.ref_model

    def set_target_model(self, model: "Model") -> None:
        if self.is_array:
            if self.array_type is None:
                self.array_type = PropertyMeta(type=PropertyType.REF)

            self.array_type.ref_model = model
        else:
            self.ref_model = model


PropertyMeta.model_rebuild()


__all__ = [
    "PropertyType",
    "PropertyMeta",
]
