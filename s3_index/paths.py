from __future__ import annotations
"""Conversions between request paths, storage keys and listing hrefs."""
import re
from urllib.parse import quote, unquote_to_bytes

SEPARATOR = "/"

_BAD_ESCAPE = re.compile(rb"%(?![0-9A-Fa-f]{2})")


class EncodingError(ValueError):
    """Raised when a request path is not valid percent-encoded UTF-8."""


class BadPathError(ValueError):
    """Raised when a path or prefix breaks the separator invariants."""


def decode_path(raw_path: str | bytes) -> str:
    """Percent-decode ``raw_path`` into text.

    Malformed escapes and byte sequences that are not UTF-8 raise
    :class:`EncodingError` instead of passing through.
    """

    if isinstance(raw_path, str):
        raw_path = raw_path.encode("utf-8")
    if _BAD_ESCAPE.search(raw_path):
        raise EncodingError(f"malformed percent escape in {raw_path!r}")
    try:
        return unquote_to_bytes(raw_path).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise EncodingError(f"path {raw_path!r} is not valid UTF-8") from exc


def encode_for_url(text: str) -> str:
    """Percent-encode ``text`` for use inside an href, keeping ``/``."""

    return quote(text, safe=SEPARATOR)


def to_storage_key(path: str) -> str:
    if not path.startswith(SEPARATOR):
        raise BadPathError(f"request path {path!r} does not start with {SEPARATOR!r}")
    return path[len(SEPARATOR):]


def to_request_path(key: str) -> str:
    return SEPARATOR + key


def is_prefix(key: str) -> bool:
    return key == "" or key.endswith(SEPARATOR)


def parent_of(prefix: str) -> str | None:
    """Return the prefix one level above ``prefix``.

    ``"a/b/"`` gives ``"a/"``, ``"a/"`` gives ``""`` and the root prefix
    ``""`` has no parent.
    """

    if not is_prefix(prefix):
        raise BadPathError(f"{prefix!r} is not a prefix")
    if not prefix:
        return None
    stripped = prefix[: -len(SEPARATOR)]
    index = stripped.rfind(SEPARATOR)
    if index < 0:
        return ""
    return stripped[: index + 1]
