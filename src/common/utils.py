"""Common utility functions."""

from typing import Any


def get_value(obj: Any, key: str, default: Any = None) -> Any:
    """Get value from dict, row mapping or object attribute."""
    if isinstance(obj, dict):
        return obj.get(key, default)
    if hasattr(obj, "keys") and hasattr(obj, "__getitem__"):
        return obj[key] if key in obj.keys() else default
    return getattr(obj, key, default)
