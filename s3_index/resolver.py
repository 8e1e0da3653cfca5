from __future__ import annotations
"""Decide how a request path is answered: redirect, listing or 404."""
from datetime import timedelta
import logging

from .listing import ListingAggregator, StoreProtocolError
from .models import (
    ErrorKind,
    Exists,
    HeadFailure,
    ListingResult,
    Missing,
    NotFound,
    OpaqueNotFound,
    Redirect,
    Resolution,
    ResolutionError,
)
from .paths import SEPARATOR, BadPathError, EncodingError, decode_path, is_prefix, to_storage_key
from .services import BadPresignedUrl, StoreError

LOGGER = logging.getLogger(__name__)

DEFAULT_PRESIGN_EXPIRY = timedelta(hours=24)


class PathResolver:
    """Maps request paths onto the bucket.

    The store must provide ``head_object``, ``list_objects`` and ``presign``
    (see :class:`s3_index.services.S3ObjectStore`).
    """

    def __init__(
        self,
        store,
        aggregator: ListingAggregator | None = None,
        *,
        presign_expiry: timedelta = DEFAULT_PRESIGN_EXPIRY,
        directory_fallback: bool = True,
    ):
        self._store = store
        self._aggregator = aggregator or ListingAggregator(store)
        self._presign_expiry = presign_expiry
        self._directory_fallback = directory_fallback

    @property
    def presign_expiry(self) -> timedelta:
        return self._presign_expiry

    @property
    def directory_fallback(self) -> bool:
        return self._directory_fallback

    def resolve(self, raw_path: str | bytes, *, nodir: bool = False) -> Resolution:
        """Resolve a raw (still percent-encoded) request path.

        ``nodir`` turns off the listing fallback for keys without a trailing
        separator, the same as constructing the resolver with
        ``directory_fallback=False``.
        """

        try:
            path = decode_path(raw_path)
        except EncodingError as exc:
            LOGGER.warning("rejecting request path: %s", exc)
            return ResolutionError(ErrorKind.ENCODING, str(exc))
        try:
            key = to_storage_key(path)
        except BadPathError as exc:
            LOGGER.error("request path invariant violated: %s", exc)
            return ResolutionError(ErrorKind.BAD_PATH, str(exc))

        if is_prefix(key):
            return self._listing(key)
        return self._object(key, fallback=self._directory_fallback and not nodir)

    def _object(self, key: str, *, fallback: bool) -> Resolution:
        result = self._store.head_object(key)
        if isinstance(result, Exists):
            try:
                url = self._store.presign(key, self._presign_expiry)
            except BadPresignedUrl as exc:
                LOGGER.error("presigning failed: %s", exc)
                return ResolutionError(ErrorKind.PRESIGN, str(exc))
            return Redirect(key=key, url=url)
        if isinstance(result, (Missing, OpaqueNotFound)):
            if isinstance(result, OpaqueNotFound):
                LOGGER.debug("treating opaque %d for '%s' as not found", result.status_code, key)
            if not fallback:
                return NotFound()
            return self._listing(key + SEPARATOR)
        if isinstance(result, HeadFailure):
            LOGGER.error("head_object '%s' failed: %s", key, result.detail)
            return ResolutionError(ErrorKind.STORE, result.detail)
        raise TypeError(f"unexpected head result {result!r}")

    def _listing(self, prefix: str) -> Resolution:
        try:
            listing = self._aggregator.list(prefix)
        except StoreError as exc:
            LOGGER.error("listing failed: %s", exc)
            return ResolutionError(ErrorKind.STORE, str(exc))
        except StoreProtocolError as exc:
            LOGGER.error("listing aborted: %s", exc)
            return ResolutionError(ErrorKind.PROTOCOL, str(exc))
        if listing.is_empty:
            return NotFound()
        return ListingResult(listing)
