import copy
from typing import Any


def deep_merge(
    base: dict[str, Any] | None,
    override: dict[str, Any] | None,
) -> dict[str, Any]:
    """Merge ``override`` onto ``base`` and return a new dict.

    Nested dicts merge key by key. Any other value in ``override``,
    lists included, replaces the value in ``base`` wholesale. Keys whose
    override value is None count as unset and keep the base value.
    Neither argument is modified.
    """
    result = copy.deepcopy(base) if base else {}
    for key, value in (override or {}).items():
        if value is None:
            continue
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result
