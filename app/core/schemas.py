"""Shared API schema primitives."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema exposing camelCase JSON while keeping snake_case attributes.

    The LIFF front-end speaks camelCase; Python code and the database use
    snake_case. Both spellings are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ErrorResponse(BaseModel):
    """Standard error response schema.

    All API errors return this format for consistency.
    """

    type: str
    message: str
