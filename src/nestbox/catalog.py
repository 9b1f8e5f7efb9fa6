"""Resource catalogs: read-only views over packaged resources.

A *provider* knows how to enumerate resources for one module and
namespace prefix. A ``ResourceCatalog`` snapshots a provider once and
then answers name lookups for the lifetime of the process::

    catalog = ResourceCatalog(PackageResources("myapp", "static"))
    catalog.names              # ("css/site.css", "index.html", ...)
    with catalog.open("index.html") as stream:
        ...

Names are POSIX relative paths under the prefix. Each entry also carries
a dotted ``qualified_name`` (``myapp.static.css.site.css``) for layers
that address resources by namespace, like the view locator.
"""

import io
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from importlib import resources, util
from importlib.resources.abc import Traversable
from pathlib import Path
from types import ModuleType
from typing import BinaryIO, Protocol, runtime_checkable

from nestbox._internal.types import Opener
from nestbox.errors import ConfigurationError, ResourceNotFound

logger = logging.getLogger("nestbox.resources")

# Never packaged content, only import machinery artifacts
_SKIPPED_DIRS = frozenset({"__pycache__"})
_SKIPPED_SUFFIXES = (".py", ".pyc", ".pyo")


def utc_now() -> datetime:
    """Current instant, UTC, truncated to whole seconds (HTTP date precision)."""
    return datetime.now(UTC).replace(microsecond=0)


def module_name(module: str | ModuleType) -> str:
    """Return the dotted name for a module handle or name."""
    return module if isinstance(module, str) else module.__name__


def is_package(package: str | ModuleType) -> bool:
    """Whether *package* is a package, as opposed to a single-file module.

    Only packages own a directory of data; ``importlib.resources`` maps a
    plain module to the directory holding it, siblings and all.

    Raises:
        ConfigurationError: *package* cannot be imported.
    """
    name = module_name(package)
    try:
        spec = util.find_spec(name)
    except (ModuleNotFoundError, ValueError) as exc:
        msg = f"Cannot load resources: package {name!r} is not importable"
        raise ConfigurationError(msg) from exc
    if spec is None:
        msg = f"Cannot load resources: package {name!r} is not importable"
        raise ConfigurationError(msg)
    return spec.submodule_search_locations is not None


@dataclass(frozen=True, slots=True)
class ResourceEntry:
    """One packaged resource: its name, an opener, and a timestamp.

    ``opener`` returns a fresh binary stream on every call, so the same
    entry can be served to any number of requests.
    """

    name: str
    opener: Opener = field(repr=False, compare=False)
    last_modified: datetime
    qualified_name: str = ""


@runtime_checkable
class ResourceProvider(Protocol):
    """Anything that can enumerate resources for a catalog."""

    def entries(self) -> Iterable[ResourceEntry]: ...


class PackageResources:
    """Provider over package data, via ``importlib.resources``.

    Walks ``files(package) / prefix`` recursively. Resources on a real
    filesystem report their mtime; resources inside zips or other
    loaders report the instant this provider was created.
    """

    __slots__ = ("_loaded_at", "package", "prefix")

    def __init__(self, package: str | ModuleType, prefix: str = "") -> None:
        self.package = module_name(package)
        self.prefix = prefix.strip("/")
        self._loaded_at = utc_now()

    def __repr__(self) -> str:
        return f"PackageResources({self.package!r}, {self.prefix!r})"

    @property
    def namespace(self) -> str:
        """Dotted namespace of the prefix, e.g. ``myapp.static.css``."""
        parts = [self.package, *(p for p in self.prefix.split("/") if p)]
        return ".".join(parts)

    def _root(self) -> Traversable:
        if not is_package(self.package):
            msg = f"Cannot load resources: {self.package!r} is a module, not a package"
            raise ConfigurationError(msg)
        root = resources.files(self.package)
        for part in self.prefix.split("/"):
            if part:
                root = root / part
        return root

    def entries(self) -> Iterator[ResourceEntry]:
        root = self._root()
        if not root.is_dir():
            logger.warning("Resource prefix %r not found in package %r", self.prefix, self.package)
            return
        yield from self._walk(root, ())

    def _walk(self, node: Traversable, parts: tuple[str, ...]) -> Iterator[ResourceEntry]:
        for child in node.iterdir():
            name = child.name
            if child.is_dir():
                if name not in _SKIPPED_DIRS:
                    yield from self._walk(child, (*parts, name))
                continue
            if name.endswith(_SKIPPED_SUFFIXES):
                continue
            relative = (*parts, name)
            yield ResourceEntry(
                name="/".join(relative),
                opener=_traversable_opener(child),
                last_modified=self._timestamp(child),
                qualified_name=".".join((self.namespace, *relative)),
            )

    def _timestamp(self, node: Traversable) -> datetime:
        if isinstance(node, Path):
            try:
                mtime = node.stat().st_mtime
            except OSError:
                return self._loaded_at
            return datetime.fromtimestamp(int(mtime), UTC)
        return self._loaded_at


def _traversable_opener(node: Traversable) -> Opener:
    def opener() -> BinaryIO:
        return node.open("rb")

    return opener


class InMemoryResources:
    """Provider over an in-memory mapping of name to content.

    Strings are encoded as UTF-8. Every entry shares one timestamp
    (given, or the creation instant)::

        InMemoryResources({"index.html": "<h1>Hi</h1>", "logo.png": png_bytes})
    """

    __slots__ = ("_contents", "last_modified", "namespace")

    def __init__(
        self,
        contents: Mapping[str, str | bytes],
        *,
        last_modified: datetime | None = None,
        namespace: str = "",
    ) -> None:
        self._contents = {
            name.strip("/"): data.encode("utf-8") if isinstance(data, str) else bytes(data)
            for name, data in contents.items()
        }
        stamp = last_modified or utc_now()
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=UTC)
        self.last_modified = stamp.astimezone(UTC).replace(microsecond=0)
        self.namespace = namespace

    def __repr__(self) -> str:
        return f"InMemoryResources({len(self._contents)} entries, namespace={self.namespace!r})"

    def entries(self) -> Iterator[ResourceEntry]:
        for name, data in self._contents.items():
            dotted = name.replace("/", ".")
            yield ResourceEntry(
                name=name,
                opener=_bytes_opener(data),
                last_modified=self.last_modified,
                qualified_name=f"{self.namespace}.{dotted}" if self.namespace else dotted,
            )


def _bytes_opener(data: bytes) -> Opener:
    def opener() -> BinaryIO:
        return io.BytesIO(data)

    return opener


class ResourceCatalog:
    """Read-only, ordered view over a provider's resources.

    The provider is enumerated exactly once, at construction. Names are
    stable for the lifetime of the catalog; nothing is added or removed
    afterwards, which is what makes lock-free concurrent reads safe.
    """

    __slots__ = ("_entries", "_names", "provider")

    def __init__(self, provider: ResourceProvider) -> None:
        self.provider = provider
        entries: dict[str, ResourceEntry] = {}
        for entry in provider.entries():
            entries[entry.name] = entry
        self._names = tuple(sorted(entries))
        self._entries = {name: entries[name] for name in self._names}
        logger.debug("Loaded %d resources from %r", len(self._names), provider)

    @classmethod
    def from_package(cls, package: str | ModuleType, prefix: str = "") -> ResourceCatalog:
        """Shorthand for ``ResourceCatalog(PackageResources(package, prefix))``."""
        return cls(PackageResources(package, prefix))

    @classmethod
    def from_mapping(cls, contents: Mapping[str, str | bytes], **kwargs: object) -> ResourceCatalog:
        """Shorthand for ``ResourceCatalog(InMemoryResources(contents, ...))``."""
        return cls(InMemoryResources(contents, **kwargs))  # type: ignore[arg-type]

    def __repr__(self) -> str:
        return f"ResourceCatalog({self.provider!r})"

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[ResourceEntry]:
        return iter(self._entries.values())

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    @property
    def names(self) -> tuple[str, ...]:
        """All resource names, sorted."""
        return self._names

    def entry(self, name: str) -> ResourceEntry:
        """Return the entry for *name*.

        Raises:
            ResourceNotFound: If the catalog has no such resource.
        """
        try:
            return self._entries[name]
        except KeyError:
            raise ResourceNotFound(name, repr(self.provider)) from None

    def open(self, name: str) -> BinaryIO:
        """Open a fresh binary stream over resource *name*."""
        return self.entry(name).opener()

    def last_modified(self, name: str) -> datetime:
        """Timestamp recorded for resource *name*."""
        return self.entry(name).last_modified
