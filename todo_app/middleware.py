import logging
import zlib
from typing import Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = [
    "Accept",
    "Accept-Encoding",
    "Authorization",
    "Content-Type",
    "Origin",
]

# Preference order when the client weighs several encodings equally.
SUPPORTED_ENCODINGS = ("gzip", "deflate")


class RequestTracingMiddleware:
    """Logs one event at the start of every HTTP request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            logger.info(
                "begin request",
                extra={"method": scope["method"], "path": scope["path"]},
            )
        await self.app(scope, receive, send)


def negotiate_encoding(accept_encoding: str) -> Optional[str]:
    """
    Pick gzip or deflate from an Accept-Encoding header, honouring q-values.

    Returns None when neither is acceptable.
    """
    weights = {}
    wildcard: Optional[float] = None
    for part in accept_encoding.split(","):
        token, _, params = part.strip().partition(";")
        token = token.strip().lower()
        if not token:
            continue
        q = 1.0
        for param in params.split(";"):
            name, _, value = param.strip().partition("=")
            if name.strip().lower() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0
        if token == "*":
            wildcard = q
        else:
            weights[token] = q

    best, best_q = None, 0.0
    for encoding in SUPPORTED_ENCODINGS:
        q = weights.get(encoding, wildcard if wildcard is not None else 0.0)
        if q > best_q:
            best, best_q = encoding, q
    return best


class CompressionMiddleware:
    """Compresses response bodies with gzip or deflate, as the client asks."""

    def __init__(self, app: ASGIApp, minimum_size: int = 500, compresslevel: int = 6) -> None:
        self.app = app
        self.minimum_size = minimum_size
        self.compresslevel = compresslevel

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        encoding = negotiate_encoding(Headers(scope=scope).get("accept-encoding", ""))
        if encoding is None:
            await self.app(scope, receive, send)
            return
        responder = CompressionResponder(self.app, encoding, self.minimum_size, self.compresslevel)
        await responder(scope, receive, send)


class CompressionResponder:
    def __init__(self, app: ASGIApp, encoding: str, minimum_size: int, compresslevel: int) -> None:
        self.app = app
        self.encoding = encoding
        self.minimum_size = minimum_size
        wbits = zlib.MAX_WBITS | 16 if encoding == "gzip" else zlib.MAX_WBITS
        self.compressor = zlib.compressobj(compresslevel, zlib.DEFLATED, wbits)
        self.send: Send = _unattached_send
        self.initial_message: Message = {}
        self.started = False
        self.passthrough = False

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        self.send = send
        await self.app(scope, receive, self.send_compressed)

    def _mark_encoded(self, content_length: Optional[int]) -> None:
        headers = MutableHeaders(raw=self.initial_message["headers"])
        headers["Content-Encoding"] = self.encoding
        headers.add_vary_header("Accept-Encoding")
        if content_length is None:
            del headers["Content-Length"]
        else:
            headers["Content-Length"] = str(content_length)

    async def send_compressed(self, message: Message) -> None:
        message_type = message["type"]
        if message_type == "http.response.start":
            self.initial_message = message
            headers = Headers(raw=message["headers"])
            self.passthrough = "content-encoding" in headers
            return

        if message_type != "http.response.body":
            await self.send(message)
            return

        body = message.get("body", b"")
        more_body = message.get("more_body", False)

        if self.passthrough:
            if not self.started:
                self.started = True
                await self.send(self.initial_message)
            await self.send(message)
            return

        if not self.started:
            self.started = True
            if not more_body and len(body) < self.minimum_size:
                # left as identity, but the choice still depended on Accept-Encoding
                MutableHeaders(raw=self.initial_message["headers"]).add_vary_header("Accept-Encoding")
                await self.send(self.initial_message)
                await self.send(message)
            elif not more_body:
                compressed = self.compressor.compress(body) + self.compressor.flush()
                self._mark_encoded(len(compressed))
                await self.send(self.initial_message)
                await self.send({"type": "http.response.body", "body": compressed})
            else:
                self._mark_encoded(None)
                await self.send(self.initial_message)
                await self.send(
                    {
                        "type": "http.response.body",
                        "body": self.compressor.compress(body),
                        "more_body": True,
                    }
                )
            return

        chunk = self.compressor.compress(body)
        if not more_body:
            chunk += self.compressor.flush()
        await self.send({"type": "http.response.body", "body": chunk, "more_body": more_body})


async def _unattached_send(message: Message) -> None:  # pragma: no cover
    raise RuntimeError("send called before the responder was started")


def cors_options() -> dict:
    return {
        "allow_origins": ["*"],
        "allow_methods": ["*"],
        "allow_headers": list(CORS_ALLOW_HEADERS),
    }
