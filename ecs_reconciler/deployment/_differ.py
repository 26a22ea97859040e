from typing import Any


def _matches(candidate: Any, latest: Any) -> bool:
    if isinstance(candidate, dict):
        if not isinstance(latest, dict):
            return False
        for key, value in candidate.items():
            if key not in latest:
                return False
            if not _matches(value, latest[key]):
                return False
        return True
    if isinstance(candidate, list):
        if not isinstance(latest, list) or len(candidate) != len(latest):
            return False
        return all(_matches(c, l) for c, l in zip(candidate, latest))
    # True == 1 in Python; a type change is a change
    return type(candidate) is type(latest) and candidate == latest


def is_reusable(
    candidate: dict[str, Any],
    latest: dict[str, Any] | None,
) -> bool:
    """Return True if ``latest`` already satisfies ``candidate``.

    Every key of ``candidate`` must be present in ``latest`` with an
    equal value. Nested dicts are compared the same way, lists must have
    the same length and match element by element. Keys present only in
    ``latest`` (platform defaults, revision metadata) are ignored.
    """
    if latest is None:
        return False
    return _matches(candidate, latest)
