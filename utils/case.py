"""
Case conversion for API payloads: the frontend speaks camelCase.
Uses Pydantic's alias_generators for consistency with schema validation.
"""
import uuid
from typing import Any

from pydantic.alias_generators import to_camel


def dict_keys_to_camel(obj: Any) -> Any:
    """Recursively convert dict keys from snake_case to camelCase for API responses."""
    if isinstance(obj, dict):
        return {to_camel(k): dict_keys_to_camel(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [dict_keys_to_camel(x) for x in obj]
    return obj


def new_id(prefix: str) -> str:
    """Short prefixed id, e.g. 'app-3f2a9c0d1e4b'."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"
