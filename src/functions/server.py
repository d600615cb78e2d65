"""
Local host for the HTTP functions.

Each request runs its handler on a fresh event loop in the request thread,
with its own upstream clients, so threads never share an httpx client.
"""
from __future__ import annotations

import asyncio
import json
from functools import partial
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlparse

from loguru import logger

from config.settings import Settings
from src.functions.cors import FunctionResponse, cors_headers, invoke_with_cors
from src.functions.handlers import ROUTES, FunctionContext

ContextFactory = Callable[[Settings], FunctionContext]


async def dispatch(
    settings: Settings,
    name: str,
    method: str,
    query: dict[str, str],
    origin: Optional[str],
    context_factory: ContextFactory = FunctionContext,
) -> FunctionResponse:
    """Resolve ``name`` to a function and run it behind the CORS wrapper."""
    allowed = settings.upstream.allowed_origins
    handler = ROUTES.get(name)
    if handler is None:
        return FunctionResponse(
            status=404,
            body={"success": False, "error": f"Unknown function '{name}'"},
            headers=cors_headers(origin, allowed),
        )

    async with context_factory(settings) as ctx:
        return await invoke_with_cors(partial(handler, ctx), method, query, origin, allowed)


class FunctionsHTTPServer(ThreadingHTTPServer):
    """HTTP server carrying app settings for request handlers."""

    def __init__(
        self,
        server_address: tuple[str, int],
        settings: Settings,
        context_factory: ContextFactory = FunctionContext,
    ) -> None:
        super().__init__(server_address, FunctionsHandler)
        self.settings = settings
        self.context_factory = context_factory


class FunctionsHandler(BaseHTTPRequestHandler):
    server: FunctionsHTTPServer

    def do_GET(self) -> None:  # noqa: N802 (BaseHTTPRequestHandler signature)
        self._handle("GET")

    def do_POST(self) -> None:  # noqa: N802
        self._handle("POST")

    def do_OPTIONS(self) -> None:  # noqa: N802
        self._handle("OPTIONS")

    def log_message(self, fmt: str, *args: Any) -> None:
        logger.debug("functions: " + fmt, *args)

    def _handle(self, method: str) -> None:
        parsed = urlparse(self.path)
        name = parsed.path.strip("/")
        query = {key: values[-1] for key, values in parse_qs(parsed.query).items()}
        response = asyncio.run(
            dispatch(
                self.server.settings,
                name,
                method,
                query,
                self.headers.get("Origin"),
                self.server.context_factory,
            )
        )
        self._send(response)

    def _send(self, response: FunctionResponse) -> None:
        raw = b"" if response.body is None else json.dumps(response.body).encode("utf-8")
        self.send_response(response.status)
        for key, value in response.headers.items():
            self.send_header(key, value)
        if response.body is not None:
            self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        if raw:
            self.wfile.write(raw)


def run_functions_server(settings: Settings, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve every function under ``/<name>`` until interrupted."""
    host = host or settings.server.host
    port = port or settings.server.functions_port
    server = FunctionsHTTPServer((host, port), settings)
    logger.info(f"Serving functions {', '.join(ROUTES)} at http://{host}:{port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Functions server stopped by user")
    finally:
        server.server_close()
