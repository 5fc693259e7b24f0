import json
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from repokit.core.base import Repokit
from repokit.database.core.error_sink import ErrorSink, NullErrorSink
from repokit.database.core.exceptions import UnsupportedDotNotationError
from repokit.database.core.schema import ModelSchema, PartialSchema
from repokit.database.core.types import (
    AggregateResponse,
    Filter,
    InsertResponse,
    Pipeline,
    QueryResponse,
    QueryResponseSingle,
    ResponseStatus,
)
from repokit.database.core.update_payload import extract_update_payload

T = TypeVar("T", bound=BaseModel)

SchemaArg = Union[Type[BaseModel], PartialSchema, bool, None]


def _dumps(obj: Any) -> str:
    return json.dumps(obj, indent=2, default=str)


class MongoRepo(Repokit, Generic[T]):
    """
    A type-safe MongoDB repository base class with runtime schema validation using pydantic.

    Every operation returns a response envelope (``data``, ``status``, ``error``) instead of raising, so callers
    handle database and validation failures the same way. Documents that fail validation are dropped from ``data``,
    logged as warnings and reported to the repository's error sink.

    Args:
        db: Motor database handle holding the collection.
        collection_name: Name of the collection to wrap.
        schema: Pydantic model describing a full document, or a ready-made ``PartialSchema``.
        error_sink: Where failures are reported while ``REPOKIT_DATABASE__ENVIRONMENT`` is ``development``.
            Defaults to a ``NullErrorSink``.
        **kwargs: Passed to ``Repokit`` (``config_overrides``, ``logger`` and logger options).

    Example:
        .. code-block:: python

            from typing import Literal, Optional

            from repokit.database import FileErrorSink, MongoRepo, RepoDocument

            class Notification(RepoDocument):
                name: str
                status: Literal["pending", "sent", "failed"]
                count: Optional[int] = None

            class NotificationRepo(MongoRepo[Notification]):
                def __init__(self, db):
                    super().__init__(db, "notifications", Notification, error_sink=FileErrorSink())

            repo = NotificationRepo(client["app"])
            response = await repo.find({"status": "pending"}, select=["_id", "name"])
            if response.ok:
                for notification in response.data:
                    print(notification.name)

            await repo.find_one_and_update({"name": "welcome"}, {"$set": {"status": "sent"}, "$inc": {"count": 1}})
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        collection_name: str,
        schema: Union[Type[T], PartialSchema],
        *,
        error_sink: Optional[ErrorSink] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.db = db
        self.collection_name = collection_name
        self.collection: AsyncIOMotorCollection = db.get_collection(collection_name)
        self.schema: PartialSchema = schema if isinstance(schema, PartialSchema) else ModelSchema(schema)
        self.error_sink: ErrorSink = error_sink if error_sink is not None else NullErrorSink()

    async def _raw_find(self, filter: Filter, **options) -> List[Dict[str, Any]]:
        """Query the driver directly, bypassing schema validation.

        Not recommended for production.
        """
        return await self.collection.find(filter, **options).to_list(length=None)

    async def aggregate(self, pipeline: Pipeline, *, schema: SchemaArg = None, **options) -> AggregateResponse:
        """
        Run an aggregation pipeline with optional validation of its output.

        If the pipeline does not return full documents, pass a ``schema`` matching the shape it does return. Pass
        ``schema=False`` to skip validation entirely.

        Args:
            pipeline: The aggregation pipeline to run.
            schema: Model or schema for the output shape. Defaults to the repository schema.
            **options: Passed to the driver's ``aggregate``.

        Returns:
            AggregateResponse: Valid results, with the pipeline attached when anything failed.
        """
        try:
            results = await self.collection.aggregate(pipeline, **options).to_list(length=None)
        except PyMongoError as e:
            self.logger.error(f"Aggregate failed on {self.collection_name}: {e}")
            self.write_log_error_if_dev(e, f"{self.collection_name}.aggregate")
            return AggregateResponse(status=ResponseStatus.HAS_ERRORS, error=str(e), pipeline=pipeline)

        effective_schema = self._resolve_schema(schema)
        if effective_schema is None:
            return AggregateResponse(data=results)

        valid, invalid = self._validate_many(effective_schema, results)
        if invalid:
            error = f"{len(invalid)} {self.collection_name} document(s) failed validation during aggregate"
            self.logger.warning(f"{error}\n{_dumps(invalid)}")
            return AggregateResponse(data=valid, status=ResponseStatus.HAS_ERRORS, error=error, pipeline=pipeline)

        return AggregateResponse(data=valid)

    async def find(
        self, filter: Filter, *, limit: Optional[int] = None, select: Optional[Sequence[str]] = None
    ) -> QueryResponse:
        """
        Find documents, optionally returning only the selected fields.

        When ``select`` is given, MongoDB only returns those fields and each document is validated against a schema
        holding just those fields, so ``data`` contains projection model instances.

        Args:
            filter: MongoDB query filter.
            limit: Maximum number of documents to return.
            select: MongoDB keys to return, e.g. ``["_id", "name"]``.
        """
        func_name = "find"
        projection, dynamic_schema = self.generate_projection_and_schema(select)

        cursor = self.collection.find(filter, projection)
        if limit is not None:
            cursor = cursor.limit(limit)

        try:
            results = await cursor.to_list(length=None)
        except PyMongoError as e:
            error = f"{self.collection_name} find failed in mongodb"
            return self._driver_failure(QueryResponse, error, e, func_name, filter)

        valid, invalid = self._validate_many(dynamic_schema, results)
        if invalid:
            error = f"{len(invalid)} {self.collection_name} document(s) failed validation during find"
            self.logger.warning(f"{error}\n{_dumps(invalid)}")
            self.write_log_error_if_dev(
                {"error": error, "invalid_results": invalid}, f"{self.collection_name}.{func_name}"
            )
            return QueryResponse(data=valid, status=ResponseStatus.HAS_ERRORS, error=error, query_filter=filter)

        return QueryResponse(data=valid)

    async def find_one(self, filter: Filter, *, select: Optional[Sequence[str]] = None) -> QueryResponseSingle:
        """Find a single document. ``data`` is None when nothing matches or the match fails validation."""
        func_name = "findOne"
        projection, dynamic_schema = self.generate_projection_and_schema(select)

        try:
            result = await self.collection.find_one(filter, projection)
        except PyMongoError as e:
            error = f"1 {self.collection_name} document failed findOne in mongodb"
            return self._driver_failure(QueryResponseSingle, error, e, func_name, filter)

        if result is None:
            return QueryResponseSingle()

        parsed = dynamic_schema.validate(result)
        if not parsed.success:
            error = f"1 {self.collection_name} document failed validation during findOne"
            invalid_result = {"original_data": result, "errors": parsed.issues}
            self.logger.warning(f"{error}\n{_dumps(invalid_result)}")
            self.write_log_error_if_dev(
                {"error": error, "invalid_result": invalid_result}, f"{self.collection_name}.{func_name}"
            )
            return QueryResponseSingle(status=ResponseStatus.HAS_ERRORS, error=error, query_filter=filter)

        return QueryResponseSingle(data=parsed.data)

    async def find_one_and_update(
        self,
        filter: Filter,
        update: Mapping[str, Any],
        *,
        select: Optional[Sequence[str]] = None,
        **options,
    ) -> QueryResponse:
        """
        Validate an update against the schema, apply it to one document and return the updated document.

        Use atomic operators (``$set``, ``$inc``, ...) rather than replacing fields directly. ``updated_at`` is always
        set to the current time. Dotted field paths are not supported yet and are reported as an error response.

        Args:
            filter: MongoDB query filter selecting the document.
            update: MongoDB update expression.
            select: MongoDB keys to return, e.g. ``["status"]``.
            **options: Passed to the driver's ``find_one_and_update`` (``upsert``, ``hint``, ...).

        Returns:
            QueryResponse: ``data`` holds the updated document, or is empty when anything failed.
        """
        func_name = "findOneAndUpdate"
        context = f"{self.collection_name}.{func_name}"
        projection, dynamic_schema = self.generate_projection_and_schema(select)

        try:
            payload = extract_update_payload(update)
        except UnsupportedDotNotationError as e:
            self.logger.warning(f"Rejected update on {self.collection_name}: {e}")
            self.write_log_error_if_dev(e, context)
            return QueryResponse(status=ResponseStatus.HAS_ERRORS, error=str(e), query_filter=filter)

        prior = dynamic_schema.partial().validate(payload)
        if not prior.success:
            error = f"1 {self.collection_name} document failed validation before {func_name}"
            self.logger.warning(
                f"{error}\nOriginal Data:\n{_dumps(update)}\nValidation Errors:\n{_dumps(prior.issues)}"
            )
            self.write_log_error_if_dev({"error": error, "parse_error_issues": prior.issues}, context)
            return QueryResponse(status=ResponseStatus.HAS_ERRORS, error=error, query_filter=filter)

        set_fields = update.get("$set") or {}
        update_doc = {**update, "$set": {**set_fields, "updated_at": datetime.now(timezone.utc)}}
        driver_options = {"projection": projection, "return_document": ReturnDocument.AFTER, **options}

        try:
            result = await self.collection.find_one_and_update(filter, update_doc, **driver_options)
        except PyMongoError as e:
            error = f"1 {self.collection_name} document failed {func_name} in mongodb"
            return self._driver_failure(QueryResponse, error, e, func_name, filter)

        if result is None:
            error = f"1 {self.collection_name} document returned null {func_name} in mongodb"
            self.logger.warning(error)
            self.write_log_error_if_dev(error, context)
            return QueryResponse(status=ResponseStatus.HAS_ERRORS, error=error, query_filter=filter)

        parsed = dynamic_schema.validate(result)
        if not parsed.success:
            error = f"1 {self.collection_name} document failed validation after {func_name}"
            self.logger.warning(
                f"{error}\nOriginal Data:\n{_dumps(result)}\nValidation Errors:\n{_dumps(parsed.issues)}"
            )
            self.write_log_error_if_dev({"error": error, "parse_error_issues": parsed.issues}, context)
            return QueryResponse(status=ResponseStatus.HAS_ERRORS, error=error, query_filter=filter)

        return QueryResponse(data=[parsed.data])

    async def get_all(self, *, limit: Optional[int] = None) -> QueryResponse:
        return await self.find({}, limit=limit)

    async def insert_one(self, document: Union[Mapping[str, Any], BaseModel]) -> InsertResponse:
        """
        Validate and insert a document.

        A fresh ``_id`` and ``created_at``/``updated_at`` timestamps are added before validation, overriding any the
        caller supplied. The validated model is what gets stored and returned.
        """
        func_name = "insertOne"
        context = f"{self.collection_name}.{func_name}"
        payload = self.build_insert_payload(document)

        parsed = self.schema.validate(payload)
        if not parsed.success:
            error = "Failed to insert document: schema validation failed"
            self.logger.warning(f"{error}\n{_dumps(parsed.issues)}")
            self.write_log_error_if_dev({"error": error, "parse_error_issues": parsed.issues}, context)
            return InsertResponse(
                status=ResponseStatus.HAS_ERRORS, error=f"{error} {json.dumps(parsed.issues, default=str)}"
            )

        stored = parsed.data.model_dump(by_alias=True) if isinstance(parsed.data, BaseModel) else parsed.data

        try:
            result = await self.collection.insert_one(stored)
        except PyMongoError as e:
            error = "MongoDB failed to insertOne"
            self.logger.error(f"{error}: {e}")
            self.write_log_error_if_dev({"error": error, "err": e}, context)
            return InsertResponse(status=ResponseStatus.HAS_ERRORS, error=error)

        if not result.acknowledged:
            error = "MongoDB failed to acknowledge insert"
            self.logger.error(f"{error}\n{_dumps(stored)}")
            self.write_log_error_if_dev({"error": error, "attempted_data": stored}, context)
            return InsertResponse(status=ResponseStatus.HAS_ERRORS, error=error)

        return InsertResponse(data=parsed.data)

    def write_log_error_if_dev(self, error: Any, context: str) -> None:
        """Forward an error to the error sink when running in development with error logging enabled."""
        if self.config.REPOKIT_DATABASE.DISABLE_ERROR_LOG:
            return
        if self.config.is_development:
            self.error_sink.record(error, context)

    @staticmethod
    def build_insert_payload(document: Union[Mapping[str, Any], BaseModel]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        if isinstance(document, BaseModel):
            data = document.model_dump(by_alias=True, exclude_unset=True)
        else:
            data = dict(document)
        return {**data, "_id": ObjectId(), "created_at": now, "updated_at": now}

    @staticmethod
    def generate_projection(select: Optional[Sequence[str]]) -> Optional[Dict[str, int]]:
        return {field: 1 for field in select} if select else None

    def generate_projection_and_schema(
        self, select: Optional[Sequence[str]] = None
    ) -> Tuple[Optional[Dict[str, int]], PartialSchema]:
        return self.generate_projection(select), self.schema.projected_subset(select)

    def _resolve_schema(self, schema: SchemaArg) -> Optional[PartialSchema]:
        if schema is False:
            return None
        if schema is None or schema is True:
            return self.schema
        if isinstance(schema, PartialSchema):
            return schema
        return ModelSchema(schema)

    @staticmethod
    def _validate_many(
        schema: PartialSchema, documents: List[Dict[str, Any]]
    ) -> Tuple[List[Any], List[Dict[str, Any]]]:
        valid, invalid = [], []
        for document in documents:
            parsed = schema.validate(document)
            if parsed.success:
                valid.append(parsed.data)
            else:
                invalid.append({"original_data": document, "errors": parsed.issues})
        return valid, invalid

    def _driver_failure(self, response_cls, error: str, exc: PyMongoError, func_name: str, filter: Filter):
        self.logger.error(f"{error}: {exc}")
        self.write_log_error_if_dev(exc, f"{self.collection_name}.{func_name}")
        return response_cls(status=ResponseStatus.HAS_ERRORS, error=error, query_filter=filter)
