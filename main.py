"""
============================================================================
REACHABILITY MONITOR - MAIN APPLICATION
============================================================================
Wires every component of the monitor together and owns the startup /
shutdown order.

Startup Order
-------------
1.  Load settings (ConfigurationError → log and exit 1)
2.  Configure logging
3.  Build the MonitorContext and notifier
4.  Create AlertDispatcher, HealthEvaluator, MonitorScheduler
5.  Start AlertDispatcher dispatch loop
6.  Start HealthServer (when HEALTH_ENABLED)
7.  Start MonitorScheduler sweep loop
8.  Wait for SIGINT / SIGTERM

Shutdown Order (reverse)
------------------------
    Stop scheduler → stop health server → stop dispatcher (drains queue)
============================================================================
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional, List

from config.settings import Settings, load_settings
from exceptions.base import ConfigurationError, InitializationError
from monitoring.alerts import AlertDispatcher
from monitoring.context import MonitorContext
from monitoring.evaluator import HealthEvaluator
from monitoring.health_server import HealthServer
from monitoring.scheduler import MonitorScheduler
from utils.logger import EventLogger, get_logger, setup_logging


logger = get_logger("Main")


# ============================================================================
# APPLICATION CLASS
# ============================================================================

class MonitorApplication:
    """
    Top-level application orchestrator.

    Owns every subsystem and is the single place that knows the startup /
    shutdown order.  Subsystems receive their configuration through the
    MonitorContext built here.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

        # --- subsystems (populated during startup) ---
        self.context: Optional[MonitorContext] = None
        self.dispatcher: Optional[AlertDispatcher] = None
        self.evaluator: Optional[HealthEvaluator] = None
        self.scheduler: Optional[MonitorScheduler] = None
        self.health_server: Optional[HealthServer] = None

        self._shutdown_event = asyncio.Event()
        self._is_running = False

    # ------------------------------------------------------------------
    # BANNER
    # ------------------------------------------------------------------

    def _print_banner(self) -> None:
        banner = f"""
╔══════════════════════════════════════════════════════════════════════════╗
║   📡  {self.settings.app_name.upper():<40} v{self.settings.app_version:<18}      ║
║                                                                          ║
║   Targets  : {len(self.context.targets):<8}  Interval : {self.context.interval_seconds:<8}s                         ║
║   Notifier : {self.context.notifier.name:<10} Timeout  : {self.context.probe_timeout:<8}s                         ║
╚══════════════════════════════════════════════════════════════════════════╝
"""
        logger.info(banner)

    # ==================================================================
    # STARTUP
    # ==================================================================

    def _init_components(self) -> None:
        """Build the context and the monitoring components."""
        logger.info("── Phase 1: Monitoring components ────────────────")
        self.context = MonitorContext.from_settings(self.settings)

        self.evaluator = self.context.evaluator()
        self.dispatcher = self.context.dispatcher()
        self.scheduler = MonitorScheduler(
            self.context,
            evaluator=self.evaluator,
            dispatcher=self.dispatcher,
            event_logger=EventLogger(),
        )

        if self.settings.health_server.enabled:
            self.health_server = HealthServer(
                evaluator=self.evaluator,
                scheduler=self.scheduler,
                dispatcher=self.dispatcher,
                host=self.settings.health_server.host,
                port=self.settings.health_server.port,
                app_name=self.settings.app_name,
                app_version=self.settings.app_version,
            )

        logger.info("  ✓ AlertDispatcher, HealthEvaluator, MonitorScheduler created")

    async def startup(self) -> bool:
        """
        Execute the complete startup sequence.
        Returns False (and logs errors) if a critical phase fails.
        """
        logger.info("=" * 74)
        logger.info("  STARTING UP …")
        logger.info("=" * 74)

        try:
            self._init_components()
        except ConfigurationError as e:
            logger.error(f"  ✗ Invalid configuration: {e.log_format()}")
            return False

        self._print_banner()

        logger.info("── Phase 2: Starting background services ────────")
        await self.dispatcher.start()

        if self.health_server:
            try:
                await self.health_server.start()
            except OSError as e:
                error = InitializationError(
                    "HealthServer failed to start", component="health_server", cause=e
                )
                logger.warning(f"  ⚠ Continuing without status server: {error.log_format()}")
                self.health_server = None

        await self.scheduler.start()

        self._is_running = True
        logger.info("=" * 74)
        logger.info("  ✓ ALL SYSTEMS OPERATIONAL")
        logger.info("=" * 74)
        return True

    # ==================================================================
    # SHUTDOWN
    # ==================================================================

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """
        Graceful shutdown in reverse order.
        Each step is wrapped in try/except so a failure in one subsystem
        doesn't prevent the others from cleaning up.
        """
        if not self._is_running:
            return
        self._is_running = False

        logger.info("=" * 74)
        logger.info("  SHUTTING DOWN …")
        logger.info("=" * 74)

        if self.scheduler:
            try:
                await self.scheduler.stop()
            except Exception:
                logger.exception("  ✗ MonitorScheduler stop error")

        if self.health_server:
            try:
                await self.health_server.stop()
            except Exception:
                logger.exception("  ✗ HealthServer stop error")

        if self.dispatcher:
            try:
                await self.dispatcher.stop()
            except Exception:
                logger.exception("  ✗ AlertDispatcher stop error")

        logger.info("=" * 74)
        logger.info("  ✓ SHUTDOWN COMPLETE")
        logger.info("=" * 74)

    # ==================================================================
    # RUN
    # ==================================================================

    async def run(self) -> None:
        """Block until a shutdown is requested."""
        await self._shutdown_event.wait()


# ============================================================================
# SIGNAL HANDLER SETUP
# ============================================================================

def _install_signal_handlers(app: MonitorApplication) -> None:
    """
    Install SIGTERM / SIGINT handlers so that the monitor shuts down
    gracefully when stopped by a process supervisor.
    """
    loop = asyncio.get_running_loop()

    def _handle_signal(sig: signal.Signals) -> None:
        logger.info(f"  ⚡ {sig.name} received — initiating graceful shutdown…")
        app.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle_signal, sig)
        except (NotImplementedError, OSError):
            # Not supported on Windows; KeyboardInterrupt still works there
            pass


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Continuous network reachability monitor")
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="JSON file with settings (environment variables still apply)",
    )
    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Async main — loads settings, starts the app, runs until shutdown.

    Returns the process exit status.
    """
    args = parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        setup_logging()
        logger.error(f"✗ Cannot load configuration: {e.log_format()}")
        return 1

    setup_logging(settings.logging)
    logger.debug(f"Loaded settings: {settings.to_dict()}")

    app = MonitorApplication(settings)
    _install_signal_handlers(app)

    if not await app.startup():
        logger.error("  ✗ Startup failed — exiting")
        return 1

    try:
        await app.run()
    finally:
        await app.shutdown()
    return 0


# ============================================================================
# SCRIPT ENTRY POINT
# ============================================================================

def cli() -> None:
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
