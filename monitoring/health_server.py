"""
============================================================================
REACHABILITY MONITOR - STATUS SERVER
============================================================================
Small aiohttp server exposing the monitor's own liveness and the current
per-target verdicts.

Routes
------
GET /        → "OK"
GET /ping    → "pong"
GET /health  → uptime, scheduler and dispatcher diagnostics (JSON)
GET /status  → confirmed state, candidate, loss and latency per target
============================================================================
"""

import time
from typing import Optional, Any

from aiohttp import web

from monitoring.alerts import AlertDispatcher
from monitoring.evaluator import HealthEvaluator
from monitoring.scheduler import MonitorScheduler
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("HealthServer")


class HealthServer:
    """
    Attributes
    ----------
    _app : aiohttp.web.Application
    _runner : aiohttp.web.AppRunner
    _site : aiohttp.web.TCPSite
    _start_time : float          — epoch seconds when the server started
    _request_count : int         — total requests served
    """

    def __init__(
        self,
        evaluator: HealthEvaluator,
        scheduler: Optional[MonitorScheduler] = None,
        dispatcher: Optional[AlertDispatcher] = None,
        host: str = "0.0.0.0",
        port: int = 8080,
        app_name: str = "Reachability Monitor",
        app_version: str = "1.0.0",
    ):
        self.evaluator = evaluator
        self.scheduler = scheduler
        self.dispatcher = dispatcher
        self._host = host
        self._port = port
        self._app_name = app_name
        self._app_version = app_version

        self._app = web.Application()
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._start_time: float = 0.0
        self._request_count: int = 0

        self._app.router.add_get("/", self._handle_root)
        self._app.router.add_get("/ping", self._handle_ping)
        self._app.router.add_get("/health", self._handle_health)
        self._app.router.add_get("/status", self._handle_status)

    @property
    def app(self) -> web.Application:
        return self._app

    async def start(self) -> None:
        """Bind and start serving."""
        self._start_time = time.time()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        logger.info(f"✓ HealthServer listening on {self._host}:{self._port}")

    async def stop(self) -> None:
        """Gracefully shut down the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
        logger.info("✓ HealthServer stopped")

    # ------------------------------------------------------------------
    # ROUTE HANDLERS
    # ------------------------------------------------------------------

    async def _handle_root(self, request: web.Request) -> web.Response:
        self._request_count += 1
        return web.Response(text="OK", status=200)

    async def _handle_ping(self, request: web.Request) -> web.Response:
        self._request_count += 1
        return web.Response(text="pong", status=200)

    async def _handle_health(self, request: web.Request) -> web.Response:
        """GET /health — process liveness plus loop diagnostics."""
        self._request_count += 1
        uptime_seconds = time.time() - self._start_time if self._start_time else 0

        health: dict = {
            "status": "healthy",
            "uptime_seconds": round(uptime_seconds, 1),
            "uptime_human": TimeHelper.seconds_to_human_readable(uptime_seconds),
            "requests_served": self._request_count,
            "timestamp": TimeHelper.get_utc_now().isoformat(),
            "app_name": self._app_name,
            "app_version": self._app_version,
        }
        if self.scheduler is not None:
            health["scheduler"] = self.scheduler.get_stats()
            if not self.scheduler.is_running:
                health["status"] = "stopped"
        if self.dispatcher is not None:
            health["alerts"] = self.dispatcher.get_stats()

        return web.json_response(health, status=200)

    async def _handle_status(self, request: web.Request) -> web.Response:
        """GET /status — current verdict of every target seen so far."""
        self._request_count += 1
        targets: Any = self.evaluator.snapshot()
        return web.json_response(
            {
                "timestamp": TimeHelper.get_utc_now().isoformat(),
                "targets": targets,
            },
            status=200,
        )
