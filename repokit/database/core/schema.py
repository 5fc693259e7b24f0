"""Schema capability used by repositories to validate documents, projections and partial updates.

Repositories only talk to the ``PartialSchema`` interface. ``ModelSchema`` implements it over a pydantic model:

.. code-block:: python

    class Notification(BaseModel):
        id: Optional[PydanticObjectId] = Field(default=None, alias="_id")
        name: str
        status: Literal["pending", "sent", "failed"]

    schema = ModelSchema(Notification)
    schema.projected_subset(["_id", "status"]).validate({"_id": ObjectId(), "status": "sent"}).success  # True
    schema.partial().validate({"status": "sent"}).success  # True
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, Field, RootModel, ValidationError, create_model
from pydantic.fields import FieldInfo

from repokit.database.core.exceptions import UnsupportedSchemaError
from repokit.database.core.update_payload import ABSENT


@dataclass
class ValidationResult:
    """Outcome of ``PartialSchema.validate``.

    Attributes:
        success: Whether the value matched the schema.
        data: The validated model instance, or None on failure.
        issues: JSON-safe issue dicts (``type``, ``loc``, ``msg``, ``input``) on failure.
    """

    success: bool
    data: Any = None
    issues: List[Dict[str, Any]] = field(default_factory=list)


class PartialSchema(ABC):
    """A document schema that can validate values and derive projected and partial views of itself."""

    @abstractmethod
    def validate(self, value: Any) -> ValidationResult:
        """Validate a value. Fields holding ``ABSENT`` count as not supplied."""

    @abstractmethod
    def projected_subset(self, field_names: Optional[Iterable[str]]) -> "PartialSchema":
        """Return a schema restricted to the named fields. An empty or missing selection returns this schema."""

    @abstractmethod
    def partial(self) -> "PartialSchema":
        """Return a schema with every field optional."""


def _issues(error: ValidationError) -> List[Dict[str, Any]]:
    # ctx and input may hold ObjectId, datetime or exception instances
    return json.loads(json.dumps(error.errors(include_url=False), default=str))


class ModelSchema(PartialSchema):
    """``PartialSchema`` over a pydantic model class.

    Fields are addressed by their MongoDB key: the alias when one is set (``_id``), else the attribute name. The
    attribute name is accepted too. Derived models keep the source ``model_config`` and field constraints, but not
    model or field validators.

    Args:
        model: The pydantic model describing a full document.
    """

    def __init__(self, model: Type[BaseModel]):
        self.model = model
        self._projections: Dict[Tuple[str, ...], "ModelSchema"] = {}
        self._partial: Optional["ModelSchema"] = None

    def __repr__(self) -> str:
        return f"ModelSchema({self.model.__name__})"

    @property
    def is_object(self) -> bool:
        return not issubclass(self.model, RootModel)

    @property
    def field_keys(self) -> List[str]:
        """MongoDB keys of the model's fields, in declaration order."""
        return [info.alias or name for name, info in self.model.model_fields.items()]

    def _fields_by_key(self) -> Dict[str, Tuple[str, FieldInfo]]:
        lookup = {}
        for name, info in self.model.model_fields.items():
            lookup[name] = (name, info)
            if info.alias:
                lookup[info.alias] = (name, info)
        return lookup

    def validate(self, value: Any) -> ValidationResult:
        if isinstance(value, Mapping):
            value = {k: v for k, v in value.items() if v is not ABSENT}
        try:
            data = self.model.model_validate(value)
        except ValidationError as e:
            return ValidationResult(success=False, issues=_issues(e))
        return ValidationResult(success=True, data=data)

    def projected_subset(self, field_names: Optional[Iterable[str]]) -> "ModelSchema":
        selected = tuple(field_names or ())
        if not selected:
            return self
        if not self.is_object:
            raise UnsupportedSchemaError(f"Only object schemas are supported for select, got {self.model.__name__}")

        if selected not in self._projections:
            lookup = self._fields_by_key()
            fields = {}
            for key in selected:
                if key in lookup:
                    name, info = lookup[key]
                    fields[name] = (info.annotation, info)
            projection = create_model(
                f"{self.model.__name__}Projection", __config__=self.model.model_config, **fields
            )
            self._projections[selected] = ModelSchema(projection)
        return self._projections[selected]

    def partial(self) -> "ModelSchema":
        if not self.is_object:
            return self

        if self._partial is None:
            fields = {}
            for name, info in self.model.model_fields.items():
                annotation = Annotated[(info.annotation, *info.metadata)] if info.metadata else info.annotation
                fields[name] = (annotation, Field(default=None, alias=info.alias))
            partial = create_model(f"Partial{self.model.__name__}", __config__=self.model.model_config, **fields)
            self._partial = ModelSchema(partial)
        return self._partial
