"""Response envelope shared by every endpoint.

Learn: All responses look like {"success": bool, "message"?: str, "data"?: T}.
Errors use the same shape (see taskvault.errors). Field names go over the
wire in camelCase (createdAt, totalPages) via the alias generator, while
Python code keeps snake_case.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for wire schemas: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
