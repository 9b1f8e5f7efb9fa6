"""Virtual directories: URL prefixes bound to resource catalogs.

Bindings are made once at startup and never change::

    conventions = StaticContentConventions()
    conventions.bind("/Content", "myapp")                 # myapp/Content/...
    conventions.bind("/assets", "myapp", "static/dist")   # myapp/static/dist/...

    response = conventions.resolve(request)
    if response is None:
        ...  # not ours: hand the request to the next handler

A request under a bound prefix always gets an answer: the resource, a
304, or a 404 descriptor. ``None`` only means no prefix matched (or the
method is not served), so the host can fall through.
"""

import logging
from collections.abc import Iterable, Mapping
from types import ModuleType

from nestbox.caching import FingerprintCache
from nestbox.catalog import ResourceCatalog, module_name
from nestbox.config import EmbeddedConfig
from nestbox.errors import ConfigurationError
from nestbox.http.headers import Headers
from nestbox.http.request import RequestDescriptor
from nestbox.http.response import EmbeddedResponse
from nestbox.resolver import PathResolver
from nestbox.responses import build_response, fingerprint_entry, not_found_response

logger = logging.getLogger("nestbox.resources")


def normalize_prefix(virtual_path: str) -> str:
    """Leading slash, no trailing slash: ``"Content/"`` -> ``"/Content"``."""
    stripped = virtual_path.strip("/")
    if not stripped:
        msg = "A virtual directory needs a non-empty path prefix"
        raise ConfigurationError(msg)
    return "/" + stripped


class EmbeddedDirectory:
    """One virtual directory bound to a catalog.

    Holds the catalog, its resolver, and a fingerprint cache; all three
    are fixed at construction.
    """

    __slots__ = ("_fingerprints", "_resolver", "catalog", "config", "prefix")

    def __init__(
        self,
        prefix: str,
        catalog: ResourceCatalog,
        config: EmbeddedConfig | None = None,
    ) -> None:
        self.prefix = normalize_prefix(prefix)
        self.catalog = catalog
        self.config = config or EmbeddedConfig()
        self._resolver = PathResolver(catalog)
        self._fingerprints = FingerprintCache() if self.config.cache_fingerprints else None

    def __repr__(self) -> str:
        return f"EmbeddedDirectory({self.prefix!r}, {self.catalog!r})"

    def relative_path(self, path: str) -> str | None:
        """The part of *path* below this directory, or ``None`` if outside it.

        Prefix comparison is case-insensitive.
        """
        length = len(self.prefix)
        if path[:length].lower() != self.prefix.lower():
            return None
        rest = path[length:]
        if rest and not rest.startswith("/"):
            return None
        return rest.lstrip("/")

    def respond(self, requested: str, headers: Headers | None = None) -> EmbeddedResponse:
        """Serve *requested* (relative to this directory)."""
        headers = headers if headers is not None else Headers()
        name = self._resolver.resolve(requested)
        if name is None:
            return not_found_response(self.config)

        entry = self.catalog.entry(name)
        fingerprint = fingerprint_entry(
            entry,
            cache=self._fingerprints,
            chunk_size=self.config.chunk_size,
        )
        return build_response(entry, fingerprint, headers, self.config)


class StaticContentConventions:
    """The set of virtual directories an application serves.

    Directories are checked in binding order; the first whose prefix
    contains the request path answers.
    """

    __slots__ = ("_directories", "config")

    def __init__(self, config: EmbeddedConfig | None = None) -> None:
        self.config = config or EmbeddedConfig()
        self._directories: list[EmbeddedDirectory] = []

    def __len__(self) -> int:
        return len(self._directories)

    @property
    def directories(self) -> tuple[EmbeddedDirectory, ...]:
        return tuple(self._directories)

    def add_directory(self, virtual_path: str, catalog: ResourceCatalog) -> EmbeddedDirectory:
        """Bind *virtual_path* to an existing catalog.

        Raises:
            ConfigurationError: If the prefix is empty or already bound.
        """
        directory = EmbeddedDirectory(virtual_path, catalog, self.config)
        for existing in self._directories:
            if existing.prefix.lower() == directory.prefix.lower():
                msg = f"Virtual directory {directory.prefix!r} is already bound to {existing.catalog!r}"
                raise ConfigurationError(msg)
        self._directories.append(directory)
        logger.info("Bound %s to %r (%d resources)", directory.prefix, catalog, len(catalog))
        return directory

    def bind(
        self,
        virtual_path: str,
        package: str | ModuleType,
        prefix: str | None = None,
    ) -> EmbeddedDirectory:
        """Bind *virtual_path* to resources packaged in *package*.

        *prefix* is the folder inside the package; it defaults to the last
        segment of *virtual_path*, so ``bind("/Content", "myapp")`` serves
        ``myapp/Content``.
        """
        if prefix is None:
            prefix = normalize_prefix(virtual_path).rsplit("/", 1)[-1]
        catalog = ResourceCatalog.from_package(module_name(package), prefix)
        return self.add_directory(virtual_path, catalog)

    def find(self, path: str) -> tuple[EmbeddedDirectory, str] | None:
        """The directory containing *path* and the remainder below it."""
        for directory in self._directories:
            relative = directory.relative_path(path)
            if relative is not None:
                return directory, relative
        return None

    def resolve(self, request: RequestDescriptor) -> EmbeddedResponse | None:
        """Answer *request*, or ``None`` when it is not for a bound directory."""
        if request.method.upper() not in self.config.methods:
            return None
        found = self.find(request.path)
        if found is None:
            return None
        directory, relative = found
        return directory.respond(relative, request.headers)

    def serve(
        self,
        path: str,
        headers: Mapping[str, str | Iterable[str]] | None = None,
        method: str = "GET",
    ) -> EmbeddedResponse | None:
        """Convenience wrapper: ``resolve`` from plain values."""
        return self.resolve(RequestDescriptor.build(method, path, headers))
