"""
Common/shared Pydantic schemas.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All schemas should inherit from this.
    """

    model_config = ConfigDict(
        from_attributes=True,  # Allow ORM mode (SQLAlchemy objects)
        populate_by_name=True,  # Allow population by field name or alias
        str_strip_whitespace=True,  # Strip whitespace from strings
        validate_assignment=True,  # Validate on assignment, not just creation
    )


class ApiSchema(BaseSchema):
    """Wire schema: snake_case in Python, camelCase in JSON."""

    model_config = ConfigDict(alias_generator=to_camel)


class ErrorResponse(BaseSchema):
    """Uniform error body returned for every failure."""
    error: str
