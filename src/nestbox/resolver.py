"""Path resolution: requested virtual paths to catalog resource names.

Requests arrive percent-encoded and may carry ``.``/``..`` segments or
backslashes. ``normalize_path`` turns them into a clean relative POSIX
path, or ``None`` when nothing sensible remains (empty, or an attempt to
climb above the bound root). The resolver then matches that path
against the catalog case-insensitively::

    resolver = PathResolver(catalog)
    resolver.resolve("Subfolder/../embedded%2etxt")   # "embedded.txt"
    resolver.resolve("../../etc/passwd")              # None
"""

import logging
from urllib.parse import unquote

from nestbox.catalog import ResourceCatalog

logger = logging.getLogger("nestbox.resources")


def normalize_path(requested: str) -> str | None:
    """Decode and simplify *requested* into a relative POSIX path.

    Returns ``None`` for empty paths and for paths whose ``..`` segments
    would escape the root. Callers treat ``None`` as not found.
    """
    decoded = unquote(requested).replace("\\", "/")
    if "\x00" in decoded:
        return None
    parts: list[str] = []
    for segment in decoded.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                logger.debug("Rejected path escaping its root: %r", requested)
                return None
            parts.pop()
            continue
        parts.append(segment)
    if not parts:
        return None
    return "/".join(parts)


class PathResolver:
    """Matches normalized request paths against one catalog.

    The case-folded index is built once; catalogs never change, so
    concurrent lookups need no locking.
    """

    __slots__ = ("_index", "catalog")

    def __init__(self, catalog: ResourceCatalog) -> None:
        self.catalog = catalog
        index: dict[str, list[str]] = {}
        # catalog.names is sorted, so each bucket is too
        for name in catalog.names:
            index.setdefault(name.casefold(), []).append(name)
        self._index = index

    def matches(self, requested: str) -> list[str]:
        """All resource names matching *requested*, sorted."""
        normalized = normalize_path(requested)
        if normalized is None:
            return []
        return list(self._index.get(normalized.casefold(), ()))

    def resolve(self, requested: str) -> str | None:
        """The resource name for *requested*, or ``None`` if not found.

        When several names differ only by case, the first in sorted order
        wins and the ambiguity is logged.
        """
        found = self.matches(requested)
        if not found:
            logger.debug("No resource matches %r in %r", requested, self.catalog)
            return None
        if len(found) > 1:
            logger.warning(
                "Ambiguous resource path %r matches %s; serving %r",
                requested,
                ", ".join(repr(name) for name in found),
                found[0],
            )
        return found[0]
