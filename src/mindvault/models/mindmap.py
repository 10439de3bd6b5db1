"""Mindmap request models."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mindvault.models.upload import coerce_user_id


class SaveMindmapRequest(BaseModel):
    """Request model for the single-shot save path.

    ``data`` is any JSON value; presence is checked by the route so that a
    missing or null payload yields the same 400 as a missing name.
    """

    model_config = ConfigDict(populate_by_name=True)

    data: Any = None
    name: Optional[str] = None
    user_id: Optional[str] = Field(None, alias="userId")

    @field_validator("user_id", mode="before")
    @classmethod
    def normalize_user_id(cls, value: Any) -> Optional[str]:
        return coerce_user_id(value)
