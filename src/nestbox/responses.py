"""Response building for resolved resources.

``build_response`` turns a catalog entry, its fingerprint, and the
request headers into an ``EmbeddedResponse``:

- 304 when the client's validators still hold (no body, no content type,
  but ETag and Last-Modified so caches stay in sync)
- 200 otherwise, with Content-Type, validators, and, when negotiated,
  a compressed body plus ``Content-Encoding``

Validators always describe the uncompressed bytes, so a cached gzip
copy and a cached identity copy revalidate against the same ETag.
"""

import logging
from typing import BinaryIO

from nestbox._internal.multimap import MultiValueMapping
from nestbox.caching import Disposition, Fingerprint, FingerprintCache, compute_fingerprint, evaluate
from nestbox.catalog import ResourceEntry
from nestbox.config import EmbeddedConfig
from nestbox.encoding import compressing_writer, content_type_for, identity_writer, negotiate_encoding
from nestbox.http.response import EmbeddedResponse, no_body

logger = logging.getLogger("nestbox.resources")

_DEFAULT_CONFIG = EmbeddedConfig()


def fingerprint_entry(
    entry: ResourceEntry,
    *,
    cache: FingerprintCache | None = None,
    chunk_size: int = _DEFAULT_CONFIG.chunk_size,
) -> Fingerprint:
    """Fingerprint *entry*, through *cache* when one is given."""

    def compute() -> Fingerprint:
        with entry.opener() as stream:
            return compute_fingerprint(stream, entry.last_modified, chunk_size=chunk_size)

    if cache is None:
        return compute()
    return cache.get_or_compute(entry.name, compute)


def build_response(
    entry: ResourceEntry,
    fingerprint: Fingerprint,
    headers: MultiValueMapping,
    config: EmbeddedConfig = _DEFAULT_CONFIG,
) -> EmbeddedResponse:
    """Assemble the response for a resolved resource."""
    validators = (
        ("ETag", fingerprint.etag),
        ("Last-Modified", fingerprint.last_modified_header),
    )

    if evaluate(fingerprint, headers) is Disposition.NOT_MODIFIED:
        logger.debug("Not modified: %s", entry.name)
        return EmbeddedResponse(status=304, content_type=None, headers=validators, contents=no_body)

    response = EmbeddedResponse(
        status=200,
        content_type=content_type_for(entry.name),
        headers=validators,
        contents=identity_writer(entry.opener, config.chunk_size),
    )

    if not config.compress:
        return response

    response = response.with_header("Vary", "Accept-Encoding")
    encoding = negotiate_encoding(headers, config.encodings)
    if encoding is None:
        return response
    return response.with_header("Content-Encoding", encoding).with_contents(
        compressing_writer(entry.opener, encoding, config.compression_level, config.chunk_size)
    )


def not_found_response(config: EmbeddedConfig = _DEFAULT_CONFIG) -> EmbeddedResponse:
    """404 with the configured short diagnostic body."""
    body = config.not_found_body

    def write(sink: BinaryIO) -> None:
        sink.write(body)

    return EmbeddedResponse(status=404, content_type="text/plain; charset=utf-8", contents=write)
