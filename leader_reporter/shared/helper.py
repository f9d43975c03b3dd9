from typing import Any


def deep_update(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    for k, v in overrides.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            base[k] = deep_update(base[k], v)
        else:
            base[k] = v
    return base


def drop_none(obj):
    """
    Recursively remove None values (and the dicts they leave empty)
    so unset env variables do not shadow model defaults.
    """
    if isinstance(obj, dict):
        cleaned = {k: drop_none(v) for k, v in obj.items() if v is not None}
        return {k: v for k, v in cleaned.items() if v != {}}
    return obj


def truncate(text: str, limit: int = 1000) -> str:
    return text if len(text) <= limit else text[:limit] + "..."
