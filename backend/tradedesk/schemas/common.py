from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


# Decimal amounts leave the API as JSON numbers.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )


class Pagination(CamelModel):
    page: int
    items_per_page: int
    total_items: int
    total_pages: int


def camel_key(key: str) -> str:
    # issue codes such as NULL_TOTAL_PRICE are values, not field names
    if key.isupper():
        return key
    return to_camel(key)


def camelize(value: Any) -> Any:
    """Rename dict keys to camelCase all the way down."""
    if isinstance(value, dict):
        return {camel_key(str(key)): camelize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [camelize(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    return value


def envelope(payload: dict[str, Any]) -> dict[str, Any]:
    return {"success": True, **camelize(payload)}
