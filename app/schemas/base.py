"""
Base schema classes.

Response schemas read from ORM rows. SQLite hands back naive datetimes, so
every datetime field is normalized to UTC before serialization.
"""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from app.core.clock import as_utc


class BaseResponseSchema(BaseModel):
    """
    Base class for response schemas built with model_validate(orm_row).

    Usage:
        class PolicyResponse(BaseResponseSchema):
            id: uuid.UUID
            premium_amount: int
            expires_at: datetime
    """
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )

    @field_validator("*", mode="after")
    @classmethod
    def _utc_datetimes(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return as_utc(value)
        return value


class BaseCreateSchema(BaseModel):
    """Base class for request bodies. Unknown fields are ignored."""
    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
    )
