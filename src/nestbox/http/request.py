"""Immutable request descriptor.

Only what resolution reads: method, path, and headers. Created per
inbound request by the host, owned by the caller, never shared.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from nestbox.http.headers import Headers


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """An immutable view of an inbound request.

    ``path`` is the raw request path, still percent-encoded as the host
    received it; decoding happens during resolution.
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        headers: Mapping[str, str | Iterable[str]] | None = None,
    ) -> RequestDescriptor:
        """Create a descriptor from plain Python values."""
        return cls(method=method.upper(), path=path, headers=Headers.from_mapping(headers))

    @classmethod
    def from_asgi(cls, scope: Mapping[str, Any]) -> RequestDescriptor:
        """Create a descriptor from an ASGI HTTP scope.

        Prefers ``raw_path`` so percent-escapes such as ``%2e`` reach the
        resolver untouched; falls back to ``path``.
        """
        raw_path = scope.get("raw_path")
        path = raw_path.decode("latin-1") if raw_path else scope["path"]
        return cls(
            method=scope["method"].upper(),
            path=path,
            headers=Headers(tuple(scope.get("headers", ()))),
        )
