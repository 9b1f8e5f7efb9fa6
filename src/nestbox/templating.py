"""Kida environment setup for packaged views.

Located views become an in-memory kida loader keyed by
``ViewLocation.template_name``, so templates shipped inside a package
render exactly like ones on disk::

    env = create_environment(locator, ["html"])
    env.get_template("admin/users.html").render({"users": users})

Sources are read once, when the loader is built.
"""

import logging
from collections.abc import Iterable
from typing import Any

from kida import DictLoader, Environment

from nestbox.views import EmbeddedViewLocator, ViewLocation

logger = logging.getLogger("nestbox.views")


def create_view_loader(views: Iterable[ViewLocation]) -> DictLoader:
    """Build a kida ``DictLoader`` from located views.

    When two views share a template name, the first one located wins.
    """
    templates: dict[str, str] = {}
    for view in views:
        key = view.template_name
        if key in templates:
            logger.warning("Duplicate view %r from %s ignored", key, view.module or "<unknown>")
            continue
        templates[key] = view.read()
    return DictLoader(templates)


def create_environment(
    locator: EmbeddedViewLocator,
    extensions: Iterable[str],
    **options: Any,
) -> Environment:
    """Create a kida ``Environment`` over every view *locator* finds.

    Extra keyword arguments (``autoescape``, ``trim_blocks``, ...) go
    straight to ``Environment``.
    """
    loader = create_view_loader(locator.get_located_views(extensions))
    return Environment(loader=loader, **options)
