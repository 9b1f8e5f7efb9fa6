"""Response descriptor with chainable .with_*() transformation API.

Each transformation returns a new EmbeddedResponse. The body is never
held eagerly: ``contents`` is a writer the host invokes with its output
sink, so large resources stream straight from the package.
"""

import io
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import BinaryIO

from nestbox._internal.types import ContentWriter


def no_body(sink: BinaryIO) -> None:  # noqa: ARG001
    """Writer for responses that carry no payload (304)."""


@dataclass(frozen=True, slots=True)
class EmbeddedResponse:
    """An outbound response descriptor built through immutable transformations.

    ``status`` is one of 200, 304, or 404. ``content_type`` is ``None``
    when there is no body. Invoking ``contents(sink)`` writes the body;
    errors raised by the sink propagate to the caller.
    """

    status: int = 200
    content_type: str | None = None
    headers: tuple[tuple[str, str], ...] = ()
    contents: ContentWriter = no_body

    # -- Chainable transformations --

    def with_status(self, status: int) -> EmbeddedResponse:
        """Return a new response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> EmbeddedResponse:
        """Return a new response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> EmbeddedResponse:
        """Return a new response with additional headers."""
        new = tuple(headers.items())
        return replace(self, headers=(*self.headers, *new))

    def with_content_type(self, content_type: str | None) -> EmbeddedResponse:
        """Return a new response with a different content type."""
        return replace(self, content_type=content_type)

    def with_contents(self, contents: ContentWriter) -> EmbeddedResponse:
        """Return a new response with a different body writer."""
        return replace(self, contents=contents)

    # -- Accessors --

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return the first value of header *name* (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return default

    @property
    def has_body(self) -> bool:
        """Whether the status code permits a message body."""
        return self.status != 304 and not 100 <= self.status < 200 and self.status != 204

    @property
    def body_bytes(self) -> bytes:
        """Run the writer into a buffer and return the bytes.

        Materializes the whole payload; hosts that can stream should call
        ``contents`` with their own sink instead.
        """
        buffer = io.BytesIO()
        self.contents(buffer)
        return buffer.getvalue()
