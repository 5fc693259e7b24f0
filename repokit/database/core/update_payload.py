"""Flatten MongoDB update expressions into the field values they intend to write.

The flattened payload is only used to validate the *shape* of an update against a partial schema before it is sent
to MongoDB. It does not compute final values: ``$inc`` contributes its raw delta and array operators contribute their
argument as-is.

Example:
    .. code-block:: python

        from repokit.database.core.update_payload import ABSENT, extract_update_payload

        payload = extract_update_payload({"$set": {"status": "sent"}, "$unset": {"archivedAt": ""}})
        assert payload == {"status": "sent", "archivedAt": ABSENT}
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping

from repokit.database.core.exceptions import UnsupportedDotNotationError

OPERATOR_PREFIX = "$"
PATH_SEPARATOR = "."


class _Absent:
    """Marker for a field an update removes. Falsy, and a single instance per process."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_Absent, ())


ABSENT = _Absent()


class UpdateOperator(str, Enum):
    """Kinds of clause in an update expression."""

    SET = "$set"
    UNSET = "$unset"
    INC = "$inc"
    OTHER = "$*"  # any other operator, taken verbatim
    DIRECT = ""  # plain field assignment

    @classmethod
    def from_key(cls, key: str) -> "UpdateOperator":
        if not key.startswith(OPERATOR_PREFIX):
            return cls.DIRECT
        try:
            return cls(key)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class UpdateClause:
    """One decoded entry of an update expression.

    Operator clauses carry their field mapping in ``fields``. Direct clauses carry a single ``{field: value}`` pair.
    ``key`` keeps the raw key as written (``"$push"`` for an ``OTHER`` clause).
    """

    operator: UpdateOperator
    key: str
    fields: Mapping[str, Any]

    @property
    def is_direct(self) -> bool:
        return self.operator is UpdateOperator.DIRECT


def decode_update(update: Mapping[str, Any]) -> List[UpdateClause]:
    """Decode a raw update expression into typed clauses, preserving key order.

    Operator entries whose value is not a mapping carry no fields and are skipped.
    """
    clauses = []
    for key, value in update.items():
        operator = UpdateOperator.from_key(key)
        if operator is UpdateOperator.DIRECT:
            clauses.append(UpdateClause(operator, key, {key: value}))
        elif isinstance(value, Mapping):
            clauses.append(UpdateClause(operator, key, value))
    return clauses


def _check_field(field: str) -> None:
    if PATH_SEPARATOR in field:
        raise UnsupportedDotNotationError(field)


def extract_update_payload(update: Mapping[str, Any]) -> Dict[str, Any]:
    """Extract the flat field -> value mapping an update expression would write.

    Operator clauses are applied in expression order, so a later operator overwrites an earlier one for the same
    field. Direct assignments are applied last and win over any operator. ``$unset`` fields map to ``ABSENT``.
    Values are never copied.

    Args:
        update: The update expression, e.g. ``{"$set": {"name": "John"}, "last_attempt_at": now}``.

    Returns:
        Dict[str, Any]: The extracted payload.

    Raises:
        UnsupportedDotNotationError: If any field name, nested or top-level, contains a dot.
    """
    clauses = decode_update(update)
    for clause in clauses:
        for field in clause.fields:
            _check_field(field)

    extracted: Dict[str, Any] = {}
    for clause in clauses:
        if clause.is_direct:
            continue
        for field, value in clause.fields.items():
            extracted[field] = ABSENT if clause.operator is UpdateOperator.UNSET else value

    for clause in clauses:
        if clause.is_direct:
            extracted.update(clause.fields)

    return extracted
