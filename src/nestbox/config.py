"""Embedded content configuration.

EmbeddedConfig is a frozen dataclass: immutable after creation, checked
once in ``__post_init__`` so bad values fail at startup rather than on
the first request.
"""

from dataclasses import dataclass

from nestbox.errors import ConfigurationError

# Content codings the response builder knows how to produce
SUPPORTED_ENCODINGS = frozenset({"gzip", "deflate"})


@dataclass(frozen=True, slots=True)
class EmbeddedConfig:
    """Configuration for serving embedded resources. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = EmbeddedConfig(compress=False)
        config = EmbeddedConfig(encodings=("gzip",), compression_level=9)
    """

    # Compression
    compress: bool = True
    encodings: tuple[str, ...] = ("gzip", "deflate")  # Preference order on equal q-values
    compression_level: int = 6

    # Fingerprints are kept for the process lifetime (catalogs never change)
    cache_fingerprints: bool = True

    # Not-found body written for paths under a bound directory with no match
    not_found_body: bytes = b"NOT FOUND"

    # Methods served; anything else falls through to the host
    methods: tuple[str, ...] = ("GET", "HEAD")

    # Copy buffer size for streaming and hashing
    chunk_size: int = 64 * 1024

    def __post_init__(self) -> None:
        unknown = [e for e in self.encodings if e.lower() not in SUPPORTED_ENCODINGS]
        if unknown:
            supported = ", ".join(sorted(SUPPORTED_ENCODINGS))
            msg = f"Unsupported content encoding(s) {unknown!r}; supported: {supported}"
            raise ConfigurationError(msg)
        if not 0 <= self.compression_level <= 9:
            msg = f"compression_level must be between 0 and 9, got {self.compression_level}"
            raise ConfigurationError(msg)
        if self.chunk_size <= 0:
            msg = f"chunk_size must be positive, got {self.chunk_size}"
            raise ConfigurationError(msg)
        object.__setattr__(self, "methods", tuple(m.upper() for m in self.methods))
