"""
Case conversion and value serialization for API responses.
Storage and services use snake_case; request and response bodies use camelCase.
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic.alias_generators import to_camel, to_snake


def to_camel_key(s: str) -> str:
    """Convert a single snake_case key to camelCase (first letter lower)."""
    return to_camel(s)


def to_snake_key(s: str) -> str:
    """Convert a single camelCase key to snake_case."""
    return to_snake(s)


def dict_keys_to_camel(obj: Any) -> Any:
    """Recursively convert dict keys from snake_case to camelCase for API responses."""
    if isinstance(obj, dict):
        return {to_camel_key(k): dict_keys_to_camel(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [dict_keys_to_camel(x) for x in obj]
    return obj


def dict_keys_to_snake(obj: Any) -> Any:
    """Recursively convert dict keys from camelCase to snake_case for API input normalization."""
    if isinstance(obj, dict):
        return {to_snake_key(k): dict_keys_to_snake(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [dict_keys_to_snake(x) for x in obj]
    return obj


def json_value(value: Any) -> Any:
    """Decimals become strings so amounts keep their exact cents on the wire."""
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [json_value(v) for v in value]
    if isinstance(value, dict):
        return {k: json_value(v) for k, v in value.items()}
    return value


def row_to_camel(row: Any, columns: Optional[Iterable[str]] = None) -> dict[str, Any]:
    """Serialize an ORM row's columns (all of them unless ``columns`` is given) to a camelCase dict."""
    names = columns if columns is not None else [c.key for c in row.__table__.columns]
    return {to_camel_key(name): dict_keys_to_camel(json_value(getattr(row, name))) for name in names}
