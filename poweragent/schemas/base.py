"""Base Pydantic schemas with common patterns.

This module defines base schemas shared by the workflow, validation,
and plan schemas.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema with common configuration for all schemas.

    Configures Pydantic v2 settings for consistent behavior across all schemas.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
    )


class WireSchema(BaseSchema):
    """Schema exchanged with the graph editor and the execution runtime.

    Both sides are JavaScript, so fields are camelCase on the wire
    (``targetAgent``, ``dependsOn``) and snake_case in Python.
    """

    model_config = ConfigDict(alias_generator=to_camel)


class ErrorResponse(BaseSchema):
    """Standard error response schema."""

    error: str = Field(
        ...,
        description="Error type identifier",
        examples=["CYCLIC_GRAPH"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Unconditional cycle detected: a -> b -> a"],
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details",
        examples=[{"cycle_path": ["a", "b", "a"]}],
    )


__all__ = [
    "BaseSchema",
    "ErrorResponse",
    "WireSchema",
]
