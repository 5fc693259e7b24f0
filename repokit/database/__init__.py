from repokit.database.backends.mongo_repo import MongoRepo
from repokit.database.core.document import RepoDocument
from repokit.database.core.error_sink import ErrorSink, FileErrorSink, NullErrorSink
from repokit.database.core.exceptions import UnsupportedDotNotationError, UnsupportedSchemaError
from repokit.database.core.schema import ModelSchema, PartialSchema, ValidationResult
from repokit.database.core.types import (
    AggregateResponse,
    InsertResponse,
    QueryResponse,
    QueryResponseSingle,
    ResponseStatus,
)
from repokit.database.core.update_payload import (
    ABSENT,
    UpdateClause,
    UpdateOperator,
    decode_update,
    extract_update_payload,
)

__all__ = [
    "ABSENT",
    "AggregateResponse",
    "decode_update",
    "ErrorSink",
    "extract_update_payload",
    "FileErrorSink",
    "InsertResponse",
    "ModelSchema",
    "MongoRepo",
    "NullErrorSink",
    "PartialSchema",
    "QueryResponse",
    "QueryResponseSingle",
    "RepoDocument",
    "ResponseStatus",
    "UnsupportedDotNotationError",
    "UnsupportedSchemaError",
    "UpdateClause",
    "UpdateOperator",
    "ValidationResult",
]
