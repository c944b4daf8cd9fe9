"""URL composition helpers."""

from __future__ import annotations

from typing import Mapping, Union
from urllib.parse import urlencode, urljoin, urlsplit

__all__ = ["QueryParams", "QueryValue", "build_url", "freeze_query"]

QueryValue = Union[str, int, float, bool, None]
QueryParams = Mapping[str, QueryValue]


def _stringify(value: str | int | float | bool) -> str:
    # Lowercase booleans; whole floats render without a trailing ".0".
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_url(base_url: str | None, path: str, query: QueryParams | None = None) -> str:
    """Join `path` onto `base_url` and append the non-null query parameters.

    Absolute paths (with a scheme) ignore `base_url`. Keys whose value is
    ``None`` are dropped entirely. Parameters already present in `path` are
    kept and the new ones are appended after them, in mapping order.
    """
    target = (path or "").strip()
    if urlsplit(target).scheme:
        url = target
    else:
        if not base_url:
            raise ValueError(f"Cannot resolve relative path {target!r} without a base URL.")
        url = urljoin(base_url, target)

    if not query:
        return url

    pairs = [(str(key), _stringify(value)) for key, value in query.items() if value is not None]
    if not pairs:
        return url

    encoded = urlencode(pairs)
    base, _, fragment = url.partition("#")
    separator = "&" if urlsplit(base).query else ("" if base.endswith("?") else "?")
    joined = f"{base}{separator}{encoded}"
    return f"{joined}#{fragment}" if fragment else joined


def freeze_query(query: QueryParams | None) -> tuple[tuple[str, str], ...]:
    """Convert a query mapping into a stable, hashable tuple.

    Used to compare query parameters by value rather than identity.
    """
    if not query:
        return ()
    items: list[tuple[str, str]] = []
    for key, value in query.items():
        if value is None:
            continue
        items.append((str(key), _stringify(value)))
    return tuple(sorted(items))
