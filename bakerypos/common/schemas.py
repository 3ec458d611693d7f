"""
Base schemas shared by every module.

The web client speaks camelCase JSON; models are declared in snake_case and
accept either spelling on input.
"""
from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


class Pagination(CamelModel):
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)


class PaginatedResponse(CamelModel, Generic[T]):
    data: List[T]
    pagination: Pagination


class MessageResponse(CamelModel):
    message: str
