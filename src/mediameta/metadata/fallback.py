"""Ordered fallback chains for resolving a single field."""

from typing import Any, Callable, Iterable, Mapping, Optional

Attempt = Callable[[], Any]


def is_present(value: Any) -> bool:
    """None and empty/blank strings count as absent; 0 and False do not."""
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def first_present(attempts: Iterable[Attempt]) -> Any:
    """
    Evaluate zero-argument accessors in order and return the first present
    value, or None when every attempt comes up empty.

    Later attempts are not evaluated once one succeeds.
    """
    for attempt in attempts:
        value = attempt()
        if is_present(value):
            return value
    return None


def tag(tags: Mapping[str, Any], name: str, convert: Optional[Callable[[Any], Any]] = None) -> Attempt:
    """Accessor reading ``tags[name]`` (optionally converted)."""

    def attempt() -> Any:
        value = tags.get(name)
        if not is_present(value):
            return None
        return convert(value) if convert else value

    return attempt


def stored(value: Any) -> Attempt:
    """Accessor returning a value already stored on the asset."""
    return lambda: value
