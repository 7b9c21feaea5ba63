"""Prometheus scrape endpoint on its own port.

Ledger and webhook counters are served here instead of on the public API, so
only the scraper can reach them.
"""

from typing import Optional

from aiohttp import web

from aify.core.logging import logger
from aify.core.protocols.metrics import MetricsRenderer


class MetricsServer:
    """aiohttp app with a single ``GET /metrics`` route."""

    def __init__(self, renderer: MetricsRenderer, port: int, host: str = "0.0.0.0") -> None:
        self._renderer = renderer
        self._host = host
        self._requested_port = port
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    @property
    def port(self) -> Optional[int]:
        """Bound port once started. Differs from the requested one when that was 0."""
        if self._site is None or self._site._server is None:
            return None
        return self._site._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/metrics", self._handle_metrics)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._requested_port)
        await self._site.start()
        logger.info(f"Serving /metrics on {self._host}:{self.port}")

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        self._site = None

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        return web.Response(
            body=self._renderer.generate(),
            content_type=self._renderer.content_type,
            charset=self._renderer.charset,
        )
