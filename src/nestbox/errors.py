"""Nestbox exception hierarchy.

Lookups, configuration, and the ASGI adapter raise and catch the same
types. Requests for missing resources never raise: they become 404
descriptors. Only direct catalog lookups by name raise ``ResourceNotFound``.
"""


class NestboxError(Exception):
    """Base for all nestbox-specific errors."""


class ConfigurationError(NestboxError):
    """Raised when a binding or config value is invalid.

    Typically raised at startup, while directories are being bound.
    """


class ResourceNotFound(NestboxError, KeyError):  # noqa: N818
    """A catalog was asked for a resource name it does not contain."""

    def __init__(self, name: str, namespace: str = "") -> None:
        super().__init__(name)
        self.name = name
        self.namespace = namespace

    def __str__(self) -> str:
        if self.namespace:
            return f"resource {self.name!r} not found in {self.namespace!r}"
        return f"resource {self.name!r} not found"
