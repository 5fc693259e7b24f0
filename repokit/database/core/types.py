"""Response envelopes returned by repository operations.

Every operation returns one of these instead of raising on data or driver problems. ``status`` tells whether anything
went wrong; ``error`` carries a human-readable summary; the query filter or pipeline is echoed back only when
``status`` is ``HAS_ERRORS`` so failing queries can be reproduced.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

Filter = Dict[str, Any]
Pipeline = List[Dict[str, Any]]


class ResponseStatus(str, Enum):
    OK = "ok"
    HAS_ERRORS = "hasErrors"


class _Response(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: ResponseStatus = ResponseStatus.OK
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is ResponseStatus.OK


class QueryResponse(_Response):
    data: List[Any] = []
    query_filter: Optional[Filter] = None


class QueryResponseSingle(_Response):
    data: Optional[Any] = None
    query_filter: Optional[Filter] = None


class InsertResponse(_Response):
    data: Optional[Any] = None


class AggregateResponse(_Response):
    data: List[Any] = []
    pipeline: Optional[Pipeline] = None
