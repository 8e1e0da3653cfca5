from __future__ import annotations
"""Merge paginated store listings into one directory view."""
import logging

from .models import Listing, ListingItem, ListingPage
from .paths import BadPathError, encode_for_url, is_prefix, parent_of, to_request_path

LOGGER = logging.getLogger(__name__)

DELIMITER = "/"


class StoreProtocolError(RuntimeError):
    """Raised when the store breaks the pagination contract."""


class ListingAggregator:
    """Walks every page under a prefix and keeps the entries that make sense."""

    def __init__(self, store):
        self._store = store

    def list(self, prefix: str) -> Listing:
        """Return the merged listing for ``prefix``.

        An empty store answer yields an empty :class:`Listing`; deciding what
        that means is up to the caller.

        Raises:
            StoreError: when any page fetch fails.
            StoreProtocolError: when the store repeats a continuation token.
        """

        if not is_prefix(prefix):
            raise BadPathError(f"{prefix!r} is not a prefix")

        dirs: list[ListingItem] = []
        files: list[ListingItem] = []
        seen_tokens: set[str] = set()
        token: str | None = None
        pages = 0

        while True:
            page = self._store.list_objects(prefix, DELIMITER, token)
            pages += 1
            dirs.extend(self._directories(prefix, page))
            files.extend(self._files(prefix, page))

            token = page.next_token
            if token is None:
                if page.is_truncated:
                    LOGGER.warning("truncated listing for '%s' without continuation token", prefix)
                break
            if token in seen_tokens:
                raise StoreProtocolError(
                    f"continuation token {token!r} repeated while listing '{prefix}'"
                )
            seen_tokens.add(token)

        LOGGER.debug(
            "listed '%s': %d page(s), %d dir(s), %d file(s)", prefix, pages, len(dirs), len(files)
        )
        return Listing(prefix=prefix, items=tuple(dirs + files), parent=parent_of(prefix))

    def _directories(self, prefix: str, page: ListingPage) -> list[ListingItem]:
        items = []
        for common in page.common_prefixes:
            if not common:
                LOGGER.warning("blank prefix in common prefixes of '%s'", prefix)
                continue
            name = self._strip(prefix, common, "common prefix")
            if name is None:
                continue
            items.append(ListingItem.directory(name, self._url(prefix, name)))
        return items

    def _files(self, prefix: str, page: ListingPage) -> list[ListingItem]:
        items = []
        for obj in page.contents:
            if not obj.key:
                LOGGER.warning("blank key in contents of '%s'", prefix)
                continue
            if obj.key.endswith(DELIMITER):
                LOGGER.warning("key ending with %r found (%s)", DELIMITER, obj.key)
                continue
            name = self._strip(prefix, obj.key, "key")
            if name is None:
                continue
            items.append(
                ListingItem.file(name, self._url(prefix, name), obj.size, obj.last_modified)
            )
        return items

    @staticmethod
    def _strip(prefix: str, value: str, what: str) -> str | None:
        if not value.startswith(prefix):
            LOGGER.warning("%s without expected prefix found (%s)", what, value)
            return None
        name = value[len(prefix):]
        if not name:
            LOGGER.warning("%s equal to listed prefix found (%s)", what, value)
            return None
        return name

    @staticmethod
    def _url(prefix: str, name: str) -> str:
        return encode_for_url(to_request_path(prefix + name))
