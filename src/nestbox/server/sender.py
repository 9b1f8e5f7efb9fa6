"""ASGI response sending: translates EmbeddedResponse into ASGI messages.

The body writer is blocking, so it runs in a worker thread. Each write it
makes is forwarded to the event loop as one ``more_body`` chunk; the
payload is never buffered whole.
"""

from typing import Any

import anyio.from_thread
import anyio.to_thread

from nestbox._internal.asgi import Send
from nestbox.http.response import EmbeddedResponse


class _ChunkSink:
    """Write-only binary sink that sends each write as an ASGI body chunk.

    Lives on a worker thread. ``http.response.start`` goes out with the
    first chunk, so a writer that fails before producing output leaves
    nothing sent.
    """

    __slots__ = ("_send", "_start", "started")

    def __init__(self, send: Send, start: dict[str, Any]) -> None:
        self._send = send
        self._start = start
        self.started = False

    def writable(self) -> bool:
        return True

    def flush(self) -> None:
        pass

    def write(self, data: bytes) -> int:
        chunk = bytes(data)
        if chunk:
            if not self.started:
                anyio.from_thread.run(self._send, self._start)
                self.started = True
            anyio.from_thread.run(
                self._send,
                {"type": "http.response.body", "body": chunk, "more_body": True},
            )
        return len(chunk)


async def send_response(response: EmbeddedResponse, send: Send, *, head: bool = False) -> None:
    """Translate *response* into ``http.response.start`` / ``body`` messages.

    304 responses and HEAD requests send headers only, without running
    the writer. Otherwise the body streams in chunks with no
    content-length. A writer failure propagates; if it happens before any
    output, nothing is sent.
    """
    raw_headers: list[tuple[bytes, bytes]] = []
    if response.content_type is not None:
        raw_headers.append((b"content-type", response.content_type.encode("latin-1")))
    for name, value in response.headers:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    start = {
        "type": "http.response.start",
        "status": response.status,
        "headers": raw_headers,
    }

    if head or not response.has_body:
        await send(start)
        await send({"type": "http.response.body", "body": b""})
        return

    sink = _ChunkSink(send, start)
    await anyio.to_thread.run_sync(response.contents, sink)
    if not sink.started:
        await send(start)
    await send({"type": "http.response.body", "body": b"", "more_body": False})
