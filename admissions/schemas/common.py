"""Shared schema base classes and the response envelope."""

from typing import Any

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model speaking camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReadModel(CamelModel):
    """Response model built from ORM objects."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class PaginationSummary(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool


class UserBrief(ReadModel):
    id: str
    name: str
    email: str


def envelope(message: str, data: Any = None) -> dict[str, Any]:
    """Success envelope: {success, message, data} with camelCase keys."""
    return {
        "success": True,
        "message": message,
        "data": jsonable_encoder(data, by_alias=True),
    }


def error_body(message: str, **extra: Any) -> dict[str, Any]:
    """Failure envelope: {success: false, message, ...}."""
    body: dict[str, Any] = {"success": False, "message": message}
    for key, value in extra.items():
        if value is not None:
            body[key] = jsonable_encoder(value, by_alias=True)
    return body
