"""Nestbox: serve resources packaged inside Python packages.

Resolves requests for files and view templates shipped as package data
into response descriptors, with ETag / Last-Modified revalidation and
optional gzip or deflate encoding. Hosts call in with a request and
write the descriptor out however their transport likes.

Basic usage::

    from nestbox import RequestDescriptor, StaticContentConventions

    conventions = StaticContentConventions()
    conventions.bind("/Content", "myapp")

    response = conventions.resolve(RequestDescriptor.build("GET", "/Content/site.css"))
    if response is not None:
        response.contents(output_stream)

Packaged views for kida::

    from nestbox import EmbeddedViewLocator, PackageResourceReader, StaticModuleProvider
    from nestbox.templating import create_environment

    locator = EmbeddedViewLocator(PackageResourceReader(), StaticModuleProvider(["myapp"]))
    env = create_environment(locator, ["html"])
"""

__version__ = "0.1.0-dev"
__all__ = [
    "ConfigurationError",
    "EmbeddedConfig",
    "EmbeddedContentApp",
    "EmbeddedDirectory",
    "EmbeddedResponse",
    "EmbeddedViewLocator",
    "Fingerprint",
    "Headers",
    "InMemoryResources",
    "NestboxError",
    "PackageResourceReader",
    "PackageResources",
    "PathResolver",
    "RequestDescriptor",
    "ResourceCatalog",
    "ResourceNotFound",
    "StaticContentConventions",
    "StaticModuleProvider",
    "ViewConfig",
    "ViewLocation",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import nestbox`` fast and defers ``kida``/``anyio`` until a
    caller actually needs them.
    """
    if name == "EmbeddedConfig":
        from nestbox.config import EmbeddedConfig

        return EmbeddedConfig

    if name in ("ResourceCatalog", "PackageResources", "InMemoryResources"):
        from nestbox import catalog as _catalog

        return getattr(_catalog, name)

    if name == "PathResolver":
        from nestbox.resolver import PathResolver

        return PathResolver

    if name == "Fingerprint":
        from nestbox.caching import Fingerprint

        return Fingerprint

    if name in ("StaticContentConventions", "EmbeddedDirectory"):
        from nestbox import conventions as _conventions

        return getattr(_conventions, name)

    if name == "Headers":
        from nestbox.http.headers import Headers

        return Headers

    if name == "RequestDescriptor":
        from nestbox.http.request import RequestDescriptor

        return RequestDescriptor

    if name == "EmbeddedResponse":
        from nestbox.http.response import EmbeddedResponse

        return EmbeddedResponse

    if name in (
        "EmbeddedViewLocator",
        "PackageResourceReader",
        "StaticModuleProvider",
        "ViewConfig",
        "ViewLocation",
    ):
        from nestbox import views as _views

        return getattr(_views, name)

    if name == "EmbeddedContentApp":
        from nestbox.asgi import EmbeddedContentApp

        return EmbeddedContentApp

    if name in ("NestboxError", "ConfigurationError", "ResourceNotFound"):
        from nestbox import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
