from __future__ import annotations
"""Object store access backed by boto3."""
from datetime import timedelta
import logging
from typing import Callable
from urllib.parse import urlsplit

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .models import (
    Exists,
    HeadFailure,
    HeadResult,
    ListingPage,
    Missing,
    OpaqueNotFound,
    StoreObject,
)

LOGGER = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class StoreError(RuntimeError):
    """Raised when the object store fails to answer a listing request."""


class BadPresignedUrl(RuntimeError):
    """Raised when a presigned URL cannot be produced or is malformed."""


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _http_status(exc: ClientError) -> int | None:
    return exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")


class S3ObjectStore:
    """Read-only view of one bucket, shared by all requests."""

    def __init__(
        self,
        bucket: str,
        client_factory: Callable[..., object] | None = None,
        *,
        endpoint_url: str | None = None,
        region_name: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
    ):
        self._bucket = bucket
        self._client_factory = client_factory or boto3.client
        self._client = self._create_client(
            endpoint_url=endpoint_url,
            region_name=region_name,
            access_key=access_key,
            secret_key=secret_key,
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    def _create_client(self, *, endpoint_url, region_name, access_key, secret_key):
        config = Config(signature_version="s3v4")
        kwargs: dict[str, object] = {"config": config}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        if region_name:
            kwargs["region_name"] = region_name
        if access_key:
            kwargs["aws_access_key_id"] = access_key
            kwargs["aws_secret_access_key"] = secret_key
        return self._client_factory("s3", **kwargs)

    def check_bucket(self) -> None:
        """Raise :class:`StoreError` when the bucket is unreachable."""

        try:
            self._client.head_bucket(Bucket=self._bucket)
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"bucket '{self._bucket}' is not accessible: {exc}") from exc

    def head_object(self, key: str) -> HeadResult:
        """Check whether ``key`` names an object.

        Store errors are returned as values rather than raised so the caller
        decides which of them count as "not found".
        """

        try:
            self._client.head_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            code = _error_code(exc)
            if code in NOT_FOUND_CODES:
                return Missing()
            status = _http_status(exc)
            if status == 404:
                LOGGER.debug("head_object '%s' returned opaque 404 (code=%r)", key, code)
                return OpaqueNotFound(status_code=status)
            return HeadFailure(detail=str(exc))
        except BotoCoreError as exc:
            return HeadFailure(detail=str(exc))
        return Exists()

    def list_objects(
        self,
        prefix: str,
        delimiter: str = "/",
        continuation_token: str | None = None,
    ) -> ListingPage:
        """Fetch one page of ``list_objects_v2`` results."""

        list_params = {"Bucket": self._bucket, "Prefix": prefix, "Delimiter": delimiter}
        if continuation_token:
            list_params["ContinuationToken"] = continuation_token
        try:
            response = self._client.list_objects_v2(**list_params)
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"listing '{prefix}' failed: {exc}") from exc

        prefixes = [common.get("Prefix") for common in response.get("CommonPrefixes") or []]
        contents = [
            StoreObject(
                key=obj.get("Key"),
                size=obj.get("Size"),
                last_modified=obj.get("LastModified"),
            )
            for obj in response.get("Contents") or []
        ]
        return ListingPage(
            common_prefixes=prefixes,
            contents=contents,
            next_token=response.get("NextContinuationToken") or None,
            is_truncated=bool(response.get("IsTruncated", False)),
        )

    def presign(self, key: str, expires_in: timedelta) -> str:
        """Create a GET URL for ``key`` valid for ``expires_in``."""

        seconds = int(expires_in.total_seconds())
        if seconds <= 0:
            raise BadPresignedUrl(f"expiry {expires_in} for {key!r} must be greater than zero")
        try:
            url = self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=seconds,
            )
        except (ClientError, BotoCoreError) as exc:
            raise BadPresignedUrl(f"could not presign '{key}': {exc}") from exc
        try:
            parts = urlsplit(url)
        except (TypeError, ValueError) as exc:
            raise BadPresignedUrl(f"presigned url for '{key}' is malformed") from exc
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise BadPresignedUrl(f"presigned url for '{key}' is malformed: {url!r}")
        return url
