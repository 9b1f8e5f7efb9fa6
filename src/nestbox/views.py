"""Locating view templates packaged inside modules.

View resources are addressed by dotted, module-style names such as
``myapp.views.admin.users.html``. The locator turns each into a
``ViewLocation``: the logical name (``users``), its folder
(``admin``), and a lazy accessor for its source.

Which part of a dotted name is folder and which is module is
configuration: register a root namespace per module in ``ViewConfig``
(``myapp`` -> ``myapp.views``). Without one, the locator strips the
longest dotted prefix shared by all of that module's views. That is a
best-effort guess: a module with a single view, or whose views all sit
in one folder, gets an empty location.

Usage::

    config = ViewConfig()
    config.set_root_namespace("myapp", "myapp.views")
    config.ignore("myapp.tests")

    locator = EmbeddedViewLocator(
        PackageResourceReader(),
        StaticModuleProvider(["myapp", "myapp.tests"]),
        config,
    )
    views = locator.get_located_views(["html"])
"""

import io
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from types import ModuleType
from typing import Protocol, TextIO, runtime_checkable

from nestbox._internal.types import Opener, TextOpener
from nestbox.catalog import PackageResources, is_package, module_name

logger = logging.getLogger("nestbox.views")


@dataclass(frozen=True, slots=True)
class ViewLocation:
    """A located view: logical name, folder, and source accessor.

    ``location`` is forward-slash separated on every platform and empty
    for views at the root namespace.
    """

    name: str
    location: str
    extension: str
    contents: TextOpener = field(repr=False, compare=False)
    module: str = ""

    @property
    def template_name(self) -> str:
        """Path-style name for template loaders, e.g. ``admin/users.html``."""
        filename = f"{self.name}.{self.extension}" if self.extension else self.name
        return f"{self.location}/{filename}" if self.location else filename

    def read(self) -> str:
        """Read the whole view source."""
        with self.contents() as stream:
            return stream.read()


class ViewConfig:
    """Startup-time registries for the view locator.

    ``ignored`` lists modules never scanned; ``root_namespaces`` maps a
    module to the dotted namespace its view folders are relative to.
    Mutate while composing the application, before serving requests;
    the locator only reads it.
    """

    __slots__ = ("ignored", "root_namespaces")

    def __init__(
        self,
        *,
        ignored: Iterable[str | ModuleType] = (),
        root_namespaces: dict[str, str] | None = None,
    ) -> None:
        self.ignored: set[str] = {module_name(m) for m in ignored}
        self.root_namespaces: dict[str, str] = dict(root_namespaces or {})

    def ignore(self, module: str | ModuleType) -> None:
        """Never scan *module* for views."""
        self.ignored.add(module_name(module))

    def set_root_namespace(self, module: str | ModuleType, namespace: str) -> None:
        """Treat *namespace* as the root folder for views in *module*."""
        self.root_namespaces[module_name(module)] = namespace.strip(".")

    def is_ignored(self, module: str) -> bool:
        return module in self.ignored

    def root_namespace(self, module: str) -> str | None:
        return self.root_namespaces.get(module)


@runtime_checkable
class ModuleProvider(Protocol):
    """Supplies the modules the locator scans."""

    def modules_to_scan(self) -> Iterable[str | ModuleType]: ...


class StaticModuleProvider:
    """A fixed list of modules."""

    __slots__ = ("_modules",)

    def __init__(self, modules: Iterable[str | ModuleType]) -> None:
        self._modules = tuple(modules)

    def modules_to_scan(self) -> tuple[str | ModuleType, ...]:
        return self._modules


@runtime_checkable
class ResourceReader(Protocol):
    """Finds view resources inside one module."""

    def get_resource_stream_matches(
        self,
        module: str,
        extensions: Sequence[str],
    ) -> list[tuple[str, TextOpener]]: ...


def _text_opener(opener: Opener, encoding: str) -> TextOpener:
    def open_text() -> TextIO:
        return io.TextIOWrapper(opener(), encoding=encoding)

    return open_text


class PackageResourceReader:
    """Reads view resources from package data via ``importlib.resources``.

    Returns ``(qualified_name, opener)`` pairs for every resource in the
    module whose extension is one of *extensions* (case-insensitive).
    """

    __slots__ = ("encoding",)

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def get_resource_stream_matches(
        self,
        module: str,
        extensions: Sequence[str],
    ) -> list[tuple[str, TextOpener]]:
        if not is_package(module):
            logger.debug("Skipping %r: plain modules carry no view resources", module)
            return []
        wanted = {"." + ext.lower().lstrip(".") for ext in extensions}
        matches: list[tuple[str, TextOpener]] = []
        for entry in PackageResources(module).entries():
            dot = entry.name.rfind(".")
            if dot != -1 and entry.name[dot:].lower() in wanted:
                matches.append((entry.qualified_name, _text_opener(entry.opener, self.encoding)))
        matches.sort(key=lambda match: match[0])
        return matches


def _normalize_extensions(extensions: Iterable[str] | None) -> list[str]:
    if not extensions:
        return []
    seen: dict[str, None] = {}
    for ext in extensions:
        cleaned = ext.strip().lstrip(".").lower()
        if cleaned:
            seen[cleaned] = None
    return list(seen)


def _split_resource_name(resource_name: str) -> tuple[list[str], str, str]:
    """``a.b.View.html`` -> (["a", "b"], "View", "html")."""
    stem, _, extension = resource_name.rpartition(".")
    if not stem:
        return [], extension, ""
    *namespace, name = stem.split(".")
    return namespace, name, extension


def _common_namespace(namespaces: list[list[str]]) -> list[str]:
    if not namespaces:
        return []
    common = namespaces[0]
    for namespace in namespaces[1:]:
        size = 0
        for left, right in zip(common, namespace, strict=False):
            if left != right:
                break
            size += 1
        common = common[:size]
    return common


def _strip_root(namespace: list[str], root: list[str]) -> list[str]:
    if namespace[: len(root)] == root:
        return namespace[len(root) :]
    return namespace


class EmbeddedViewLocator:
    """Locates views across the modules a provider supplies."""

    __slots__ = ("config", "modules", "reader")

    def __init__(
        self,
        reader: ResourceReader,
        modules: ModuleProvider,
        config: ViewConfig | None = None,
    ) -> None:
        self.reader = reader
        self.modules = modules
        self.config = config or ViewConfig()

    def get_located_views(self, extensions: Iterable[str] | None) -> list[ViewLocation]:
        """All views with one of *extensions*, across every scanned module.

        Empty or ``None`` extensions yield an empty list.
        """
        wanted = _normalize_extensions(extensions)
        if not wanted:
            return []

        views: list[ViewLocation] = []
        for handle in self.modules.modules_to_scan():
            module = module_name(handle)
            if self.config.is_ignored(module):
                logger.debug("Skipping ignored module %s", module)
                continue
            matches = self.reader.get_resource_stream_matches(module, wanted)
            views.extend(self._locate(module, matches))
        return views

    def _locate(self, module: str, matches: list[tuple[str, TextOpener]]) -> list[ViewLocation]:
        if not matches:
            return []
        split = [(_split_resource_name(name), opener) for name, opener in matches]

        root_namespace = self.config.root_namespace(module)
        if root_namespace is not None:
            root = root_namespace.split(".") if root_namespace else []
        else:
            root = _common_namespace([namespace for (namespace, _, _), _ in split])
            logger.debug(
                "No root namespace registered for %s; inferred %r",
                module,
                ".".join(root),
            )

        located: list[ViewLocation] = []
        for (namespace, name, extension), opener in split:
            folder = _strip_root(namespace, root)
            located.append(
                ViewLocation(
                    name=name,
                    location="/".join(folder),
                    extension=extension,
                    contents=opener,
                    module=module,
                )
            )
        return located
