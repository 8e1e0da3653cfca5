from __future__ import annotations
"""Data models for listings, store responses and request outcomes."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True)
class StoreObject:
    """One ``Contents`` entry of a store listing page."""

    key: Optional[str] = None
    size: Optional[int] = None
    last_modified: Optional[datetime | str] = None


@dataclass(frozen=True)
class ListingPage:
    """Represents a single page returned by the store's list call."""

    common_prefixes: list[Optional[str]] = field(default_factory=list)
    contents: list[StoreObject] = field(default_factory=list)
    next_token: Optional[str] = None
    is_truncated: bool = False


@dataclass(frozen=True)
class ListingItem:
    """A directory or file shown beneath a prefix."""

    name: str
    url: str
    size: Optional[int] = None
    last_modified: Optional[datetime | str] = None
    is_dir: bool = False

    @classmethod
    def directory(cls, name: str, url: str) -> ListingItem:
        return cls(name=name, url=url, is_dir=True)

    @classmethod
    def file(
        cls,
        name: str,
        url: str,
        size: Optional[int] = None,
        last_modified: Optional[datetime | str] = None,
    ) -> ListingItem:
        return cls(name=name, url=url, size=size, last_modified=last_modified)


@dataclass(frozen=True)
class Listing:
    """All pages merged for one prefix, directories before files."""

    prefix: str
    items: tuple[ListingItem, ...] = ()
    parent: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.items


# Outcomes of a single-object existence check.


@dataclass(frozen=True)
class Exists:
    pass


@dataclass(frozen=True)
class Missing:
    pass


@dataclass(frozen=True)
class OpaqueNotFound:
    """An unclassified store error whose HTTP status says "not found"."""

    status_code: int = 404


@dataclass(frozen=True)
class HeadFailure:
    detail: str


HeadResult = Union[Exists, Missing, OpaqueNotFound, HeadFailure]


# Outcomes of resolving a request path.


class ErrorKind(Enum):
    ENCODING = "encoding"
    BAD_PATH = "bad_path"
    STORE = "store"
    PROTOCOL = "protocol"
    PRESIGN = "presign"

    @property
    def is_client_error(self) -> bool:
        return self in (ErrorKind.ENCODING, ErrorKind.BAD_PATH)


@dataclass(frozen=True)
class Redirect:
    key: str
    url: str


@dataclass(frozen=True)
class ListingResult:
    listing: Listing


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class ResolutionError:
    kind: ErrorKind
    detail: str = ""


Resolution = Union[Redirect, ListingResult, NotFound, ResolutionError]
