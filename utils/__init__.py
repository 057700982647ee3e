"""Shared utilities for the backend."""
from utils.case import dict_keys_to_camel, new_id
from utils.clock import as_utc, isoformat, start_of_day, utcnow

__all__ = [
    "as_utc",
    "dict_keys_to_camel",
    "isoformat",
    "new_id",
    "start_of_day",
    "utcnow",
]
