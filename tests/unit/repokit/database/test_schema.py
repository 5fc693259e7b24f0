import json
from datetime import datetime, timezone
from typing import List, Literal, Optional

import pytest
from bson import ObjectId
from pydantic import BaseModel, Field, RootModel

from repokit.database import ABSENT, ModelSchema, PartialSchema, RepoDocument, UnsupportedSchemaError


class Notification(RepoDocument):
    name: str = Field(min_length=3)
    status: Literal["pending", "sent", "failed"]
    count: Optional[int] = None
    archivedAt: Optional[datetime] = None


class Tags(RootModel[List[str]]):
    pass


@pytest.fixture
def schema():
    return ModelSchema(Notification)


def test_model_schema_is_partial_schema(schema):
    assert isinstance(schema, PartialSchema)
    assert repr(schema) == "ModelSchema(Notification)"


def test_field_keys_use_aliases(schema):
    assert schema.field_keys == ["_id", "created_at", "updated_at", "name", "status", "count", "archivedAt"]


def test_validate_success(schema):
    _id = ObjectId()
    result = schema.validate({"_id": _id, "name": "John", "status": "sent"})
    assert result.success
    assert isinstance(result.data, Notification)
    assert result.data.id == _id
    assert result.issues == []


def test_validate_failure_reports_json_safe_issues(schema):
    result = schema.validate({"_id": ObjectId(), "name": "Jo", "status": "unknown"})
    assert not result.success
    assert result.data is None
    assert {tuple(issue["loc"]) for issue in result.issues} == {("name",), ("status",)}
    json.dumps(result.issues)


def test_validate_treats_absent_as_missing(schema):
    result = schema.validate({"name": ABSENT, "status": "sent"})
    assert not result.success
    assert [issue["type"] for issue in result.issues] == ["missing"]


def test_projected_subset_by_alias_and_name(schema):
    by_alias = schema.projected_subset(["_id", "status"])
    by_name = schema.projected_subset(["id", "status"])
    assert by_alias.field_keys == ["_id", "status"]
    assert by_name.field_keys == ["_id", "status"]

    result = by_alias.validate({"_id": ObjectId(), "status": "sent", "name": "ignored"})
    assert result.success
    assert not hasattr(result.data, "name")


def test_projected_subset_keeps_constraints(schema):
    projection = schema.projected_subset(["name"])
    assert not projection.validate({"name": "Jo"}).success
    assert projection.validate({"name": "John"}).success


def test_projected_subset_ignores_unknown_fields(schema):
    projection = schema.projected_subset(["status", "doesNotExist"])
    assert projection.field_keys == ["status"]


def test_projected_subset_without_selection_returns_self(schema):
    assert schema.projected_subset(None) is schema
    assert schema.projected_subset([]) is schema


def test_projected_subset_is_cached(schema):
    assert schema.projected_subset(["name"]) is schema.projected_subset(["name"])


def test_projected_subset_rejects_root_models():
    with pytest.raises(UnsupportedSchemaError):
        ModelSchema(Tags).projected_subset(["anything"])


def test_partial_accepts_missing_and_absent_fields(schema):
    partial = schema.partial()
    assert partial.validate({}).success
    assert partial.validate({"archivedAt": ABSENT, "name": ABSENT}).success
    assert partial.validate({"status": "sent", "count": 1}).success


def test_partial_still_checks_types_and_constraints(schema):
    partial = schema.partial()
    assert not partial.validate({"status": "bogus"}).success
    assert not partial.validate({"name": "Jo"}).success
    assert not partial.validate({"count": "many"}).success


def test_partial_does_not_accept_none_for_non_nullable_fields(schema):
    assert not schema.partial().validate({"status": None}).success


def test_partial_keeps_aliases(schema):
    _id = ObjectId()
    result = schema.partial().validate({"_id": _id, "updated_at": datetime.now(timezone.utc)})
    assert result.success
    assert result.data.id == _id


def test_partial_of_projection_only_knows_selected_fields(schema):
    partial = schema.projected_subset(["status"]).partial()
    result = partial.validate({"status": "sent", "name": 42})
    assert result.success
    assert partial.field_keys == ["status"]


def test_partial_of_root_model_is_itself():
    schema = ModelSchema(Tags)
    assert schema.partial() is schema
    assert schema.validate(["a", "b"]).success


def test_validate_accepts_plain_models():
    class Count(BaseModel):
        status: str
        total: int

    result = ModelSchema(Count).validate({"status": "sent", "total": 2})
    assert result.success
    assert result.data.total == 2
