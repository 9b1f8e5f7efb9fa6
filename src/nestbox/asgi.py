"""ASGI adapter for embedded content.

Not a server: a thin callable any ASGI server (or another ASGI app)
can mount. Requests under a bound directory are answered from the
package; everything else goes to the wrapped *app*, or gets the 404
descriptor when there is none::

    conventions = StaticContentConventions()
    conventions.bind("/Content", "myapp")
    app = EmbeddedContentApp(conventions, app=other_asgi_app)
"""

import logging

from nestbox._internal.asgi import ASGIApp, Receive, Scope, Send
from nestbox.conventions import StaticContentConventions
from nestbox.http.request import RequestDescriptor
from nestbox.responses import not_found_response
from nestbox.server.sender import send_response

logger = logging.getLogger("nestbox.server")


class EmbeddedContentApp:
    """ASGI application serving packaged resources."""

    __slots__ = ("app", "conventions")

    def __init__(self, conventions: StaticContentConventions, app: ASGIApp | None = None) -> None:
        self.conventions = conventions
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            if self.app is None:
                msg = f"EmbeddedContentApp cannot handle {scope['type']!r} scopes without a wrapped app"
                raise RuntimeError(msg)
            await self.app(scope, receive, send)
            return

        request = RequestDescriptor.from_asgi(scope)
        response = self.conventions.resolve(request)
        if response is None:
            if self.app is not None:
                await self.app(scope, receive, send)
                return
            logger.debug("No virtual directory for %s %s", request.method, request.path)
            response = not_found_response(self.conventions.config)

        await send_response(response, send, head=request.method == "HEAD")
