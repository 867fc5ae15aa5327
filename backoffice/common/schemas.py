"""
Shared pydantic building blocks.

The front end speaks camelCase JSON; models are declared in snake_case and
accept both spellings on input.
"""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MoneyOut(CamelModel):
    """Output models whose Decimal fields are rendered as JSON numbers"""

    @field_serializer("*", mode="wrap", when_used="json", check_fields=False)
    def _decimal_as_float(self, value, handler):
        if isinstance(value, Decimal):
            return float(value)
        return handler(value)


class MessageOut(CamelModel):
    message: str


def clean_optional_str(value: Optional[str]) -> Optional[str]:
    """Blank strings coming from forms are stored as NULL"""
    if value is None:
        return None
    value = value.strip()
    return value or None
