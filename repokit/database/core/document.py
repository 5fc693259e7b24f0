from datetime import datetime
from typing import Optional

from beanie import PydanticObjectId
from pydantic import BaseModel, ConfigDict, Field


class RepoDocument(BaseModel):
    """
    Base model for documents stored through a ``MongoRepo``.

    Declares the fields every repository manages itself: ``_id`` (exposed as ``id``) and the ``created_at`` /
    ``updated_at`` timestamps written on insert and update. They are optional so projections and partial updates that
    leave them out still validate.

    Example:
        .. code-block:: python

            from repokit.database import RepoDocument

            class User(RepoDocument):
                name: str
                email: str

            User.model_validate({"_id": ObjectId(), "name": "John", "email": "john@example.com"})
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[PydanticObjectId] = Field(default=None, alias="_id")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
