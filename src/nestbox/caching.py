"""Fingerprints and conditional-request evaluation.

A ``Fingerprint`` pairs a content-derived ETag (quoted MD5 hex of the
uncompressed bytes) with a last-modified instant. ``evaluate`` decides,
from the request's conditional headers, whether the client's copy is
still good.

Precedence:

1. ``If-None-Match`` present: an exact match (quotes included) or ``*``
   means not modified; anything else means a full response, whatever
   ``If-Modified-Since`` says.
2. ``If-Modified-Since`` present and parseable: not modified unless the
   resource is strictly newer than the given date.
3. Otherwise, a full response.
"""

import enum
import hashlib
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import BinaryIO

from nestbox._internal.multimap import MultiValueMapping

_DEFAULT_CHUNK = 64 * 1024


def format_http_date(value: datetime) -> str:
    """Format *value* as an RFC 1123 date, e.g. ``Mon, 01 Jan 2024 00:00:00 GMT``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return format_datetime(value.astimezone(UTC), usegmt=True)


def parse_http_date(value: str) -> datetime | None:
    """Parse an HTTP date into an aware UTC datetime.

    Returns ``None`` when *value* is not a date; callers treat that the
    same as a missing header.
    """
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return None
    if parsed.tzinfo is None:
        # "-0000" and obsolete zone-less forms mean UTC in HTTP
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Cache validators for one resource."""

    etag: str
    last_modified: datetime

    @property
    def last_modified_header(self) -> str:
        """``Last-Modified`` header value."""
        return format_http_date(self.last_modified)


def compute_etag(stream: BinaryIO, chunk_size: int = _DEFAULT_CHUNK) -> str:
    """Hash *stream* to end and return the quoted hex digest."""
    digest = hashlib.md5(usedforsecurity=False)
    while chunk := stream.read(chunk_size):
        digest.update(chunk)
    return f'"{digest.hexdigest()}"'


def compute_fingerprint(
    stream: BinaryIO,
    last_modified: datetime,
    *,
    chunk_size: int = _DEFAULT_CHUNK,
) -> Fingerprint:
    """Fingerprint the bytes of *stream*.

    Seekable streams are rewound afterwards so the same stream can be
    copied to the client.
    """
    etag = compute_etag(stream, chunk_size)
    if stream.seekable():
        stream.seek(0)
    if last_modified.tzinfo is None:
        last_modified = last_modified.replace(tzinfo=UTC)
    return Fingerprint(etag=etag, last_modified=last_modified.astimezone(UTC).replace(microsecond=0))


class Disposition(enum.Enum):
    """What a conditional check concluded."""

    FULL = "full"
    NOT_MODIFIED = "not_modified"


def _entity_tags(values: list[str]) -> list[str]:
    tags: list[str] = []
    for value in values:
        tags.extend(tag.strip() for tag in value.split(",") if tag.strip())
    return tags


def evaluate(fingerprint: Fingerprint, headers: MultiValueMapping) -> Disposition:
    """Decide between a full response and 304 for *fingerprint*."""
    if "if-none-match" in headers:
        tags = _entity_tags(headers.get_list("if-none-match"))
        if "*" in tags or fingerprint.etag in tags:
            return Disposition.NOT_MODIFIED
        return Disposition.FULL

    since_header = headers.get("if-modified-since")
    if since_header is not None:
        since = parse_http_date(since_header)
        if since is not None:
            if fingerprint.last_modified <= since:
                return Disposition.NOT_MODIFIED
            return Disposition.FULL

    return Disposition.FULL


class FingerprintCache:
    """Process-lifetime memo of fingerprints, keyed by resource name.

    Catalog content never changes, so a fingerprint computed once stays
    valid. The lock only serializes first computations; a value, once
    stored, is read without it.
    """

    __slots__ = ("_fingerprints", "_lock")

    def __init__(self) -> None:
        self._fingerprints: dict[str, Fingerprint] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._fingerprints)

    def __contains__(self, name: object) -> bool:
        return name in self._fingerprints

    def get_or_compute(self, name: str, compute: Callable[[], Fingerprint]) -> Fingerprint:
        """Return the cached fingerprint for *name*, computing it once."""
        cached = self._fingerprints.get(name)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._fingerprints.get(name)
            if cached is None:
                cached = compute()
                self._fingerprints[name] = cached
            return cached

    def clear(self) -> None:
        """Forget every fingerprint."""
        with self._lock:
            self._fingerprints.clear()
