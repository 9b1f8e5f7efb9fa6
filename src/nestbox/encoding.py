"""Content types and content-encoding negotiation.

Content types come from a fixed extension table (Python's built-in
defaults plus a few overrides, never the host's ``/etc/mime.types``), so
the same resource gets the same type on every machine.

Encodings are negotiated from ``Accept-Encoding`` with q-values; the
chosen encoding wraps the resource stream while it is copied out.
"""

import gzip
import mimetypes
import posixpath
import shutil
import zlib
from typing import BinaryIO

from nestbox._internal.multimap import MultiValueMapping
from nestbox._internal.types import ContentWriter, Opener

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Built-in defaults only: MimeTypes() does not read system files
_BASE_TYPES = mimetypes.MimeTypes()

_OVERRIDES: dict[str, str] = {
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",
    ".svg": "image/svg+xml",
    ".wasm": "application/wasm",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".webp": "image/webp",
    ".ico": "image/vnd.microsoft.icon",
    ".md": "text/markdown",
}

_TEXT_TYPES = frozenset({"application/json", "application/javascript", "image/svg+xml", "application/xml"})


def content_type_for(name: str) -> str:
    """MIME type for resource *name*, by extension.

    Textual types carry ``charset=utf-8``; unknown extensions fall back
    to ``application/octet-stream``.
    """
    ext = posixpath.splitext(name)[1].lower()
    if not ext:
        return DEFAULT_CONTENT_TYPE
    content_type = _OVERRIDES.get(ext) or _BASE_TYPES.types_map[True].get(ext)
    if content_type is None:
        return DEFAULT_CONTENT_TYPE
    if content_type.startswith("text/") or content_type in _TEXT_TYPES:
        return f"{content_type}; charset=utf-8"
    return content_type


def _parse_accept_encoding(values: list[str]) -> dict[str, float]:
    """Map each coding token to its q-value. Invalid q-values count as 0."""
    accepted: dict[str, float] = {}
    for value in values:
        for item in value.split(","):
            token, _, params = item.strip().partition(";")
            token = token.strip().lower()
            if not token:
                continue
            quality = 1.0
            for param in params.split(";"):
                key, _, raw = param.strip().partition("=")
                if key.strip().lower() == "q":
                    try:
                        quality = float(raw.strip())
                    except ValueError:
                        quality = 0.0
            accepted[token] = quality
    return accepted


def negotiate_encoding(headers: MultiValueMapping, supported: tuple[str, ...]) -> str | None:
    """Pick the content coding to apply, or ``None`` for identity.

    The supported coding with the highest q-value above zero wins; ties
    go to the earlier entry in *supported*. ``*`` stands for any coding
    the client did not list explicitly.
    """
    if not supported or "accept-encoding" not in headers:
        return None
    accepted = _parse_accept_encoding(headers.get_list("accept-encoding"))
    wildcard = accepted.get("*")

    best: str | None = None
    best_quality = 0.0
    for coding in supported:
        coding = coding.lower()
        quality = accepted.get(coding, wildcard if wildcard is not None else 0.0)
        if quality > best_quality:
            best, best_quality = coding, quality
    return best


def identity_writer(opener: Opener, chunk_size: int) -> ContentWriter:
    """Writer that copies the resource verbatim."""

    def write(sink: BinaryIO) -> None:
        with opener() as source:
            shutil.copyfileobj(source, sink, chunk_size)

    return write


def compressing_writer(opener: Opener, encoding: str, level: int, chunk_size: int) -> ContentWriter:
    """Writer that compresses the resource with *encoding* while copying.

    gzip output uses a zero mtime, so the same bytes always compress to
    the same payload.
    """
    if encoding == "gzip":

        def write(sink: BinaryIO) -> None:
            with (
                opener() as source,
                gzip.GzipFile(fileobj=sink, mode="wb", compresslevel=level, mtime=0) as zipped,
            ):
                shutil.copyfileobj(source, zipped, chunk_size)

        return write

    if encoding == "deflate":

        def write(sink: BinaryIO) -> None:
            compressor = zlib.compressobj(level)
            with opener() as source:
                while chunk := source.read(chunk_size):
                    sink.write(compressor.compress(chunk))
            sink.write(compressor.flush())

        return write

    msg = f"Unsupported content encoding: {encoding!r}"
    raise ValueError(msg)
