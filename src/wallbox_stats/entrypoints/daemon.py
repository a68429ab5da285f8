import argparse
import asyncio
import logging
import signal
import sys
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import uvicorn

from wallbox_stats import __version__
from wallbox_stats.config import ConfigurationError, Settings, load_settings
from wallbox_stats.domain.measurements import RuntimeAccumulator, State, utc_now
from wallbox_stats.adapters.meter import HttpMeterAdapter
from wallbox_stats.adapters.yaml_store import YamlStateStore
from wallbox_stats.entrypoints.api.main import create_app
from wallbox_stats.ports.meter import MeterSourcePort
from wallbox_stats.ports.state_store import StateStorePort
from wallbox_stats.services.backup import BackupService
from wallbox_stats.services.collector import CollectorService
from wallbox_stats.services.snapshot import Snapshot

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(settings: Settings) -> None:
    target = settings.LOG_FILE
    if target == "stderr":
        destination = {"stream": sys.stderr}
    elif target == "stdout":
        destination = {"stream": sys.stdout}
    else:
        destination = {"filename": target, "filemode": "a"}

    logging.basicConfig(level=settings.LOG_LEVEL, format=LOG_FORMAT, force=True, **destination)


class Daemon:
    """
    Owns the background loops: meter collection and state backup.
    The snapshot is shared with the web endpoints.
    """

    def __init__(
        self,
        settings: Settings,
        meter: MeterSourcePort,
        store: StateStorePort,
        snapshot: Optional[Snapshot] = None,
    ):
        self.settings = settings
        self.meter = meter
        self.snapshot = snapshot or Snapshot()
        self.backup_service = BackupService(store=store, snapshot=self.snapshot)
        self.collector: Optional[CollectorService] = None
        self._tasks: list[asyncio.Task] = []
        self._started = False

    async def start(self) -> None:
        """
        Restore the persisted runtime and start the loops.
        Raises if the state file can't be read or created.
        """
        try:
            await self.backup_service.restore()
        except Exception as e:
            logger.error(f"Can't open data file {self.settings.DATA_FILE}: {e}")
            raise

        accumulator = RuntimeAccumulator(
            last_state=State.OFF,
            last_transition=utc_now(),
            interval=timedelta(seconds=self.settings.DATA_COLLECTION_INTERVAL),
        )
        self.collector = CollectorService(meter=self.meter, snapshot=self.snapshot, accumulator=accumulator)

        self._tasks = [
            asyncio.create_task(self.run_collection(self.settings.DATA_COLLECTION_INTERVAL)),
            asyncio.create_task(self.run_backup(self.settings.BACKUP_INTERVAL)),
        ]
        self._started = True

    async def stop(self) -> None:
        """Cancel the loops and try a last backup. Never raises."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        if self._started:
            try:
                await self.backup_service.backup()
            except Exception as e:
                logger.error(f"Final backup failed: {e}")
            self._started = False

        try:
            await self.meter.close()
        except Exception as e:
            logger.warning(f"Failed to close meter connection: {e}")

    async def run_collection(self, poll_interval: int):
        logger.info(f"Starting collection loop (Interval: {poll_interval}s)")
        loop = asyncio.get_running_loop()
        next_run = loop.time()
        while True:
            try:
                await self.collector.collect()
            except Exception as e:
                logger.error(f"Error in collection loop: {e}", exc_info=True)
            # Fixed cadence; a cycle that overran starts the next one right away
            next_run = max(next_run + poll_interval, loop.time())
            await asyncio.sleep(next_run - loop.time())

    async def run_backup(self, backup_interval: int):
        logger.info(f"Starting backup loop (Interval: {backup_interval}s)")
        while True:
            await asyncio.sleep(backup_interval)
            try:
                await self.backup_service.backup()
            except Exception as e:
                logger.error(f"Error in backup loop: {e}")

    async def run_until_stopped(self) -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                # Not available on Windows, KeyboardInterrupt still ends the loop there
                pass

        await self.start()
        try:
            await stop.wait()
            logger.info("Got stop signal. Stopping...")
        finally:
            await self.stop()

    @asynccontextmanager
    async def lifespan(self, app):
        await self.start()
        try:
            yield
        finally:
            await self.stop()


def build_daemon(settings: Settings) -> Daemon:
    mode = settings.COLLECTOR_MODE.lower()

    if mode == "production":
        if not settings.METER_URL:
            raise ConfigurationError("METER_URL is required in production mode")
        meter = HttpMeterAdapter(url=settings.METER_URL)
    elif mode == "mock":
        logger.info("Running in MOCK mode. Using a simulated meter.")
        from wallbox_stats.adapters.mocks import MockMeterAdapter

        meter = MockMeterAdapter()
    else:
        raise ConfigurationError(f"Unknown collector mode: {settings.COLLECTOR_MODE}")

    store = YamlStateStore(path=settings.DATA_FILE)
    return Daemon(settings=settings, meter=meter, store=store)


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Collect wallbox runtime statistics from sub meter readings")
    parser.add_argument("-c", "--config", help="YAML config file")
    parser.add_argument("--log-level", help="Log level (standard | debug | trace or a logging level name)")
    parser.add_argument("--log-file", help="Log target (stderr | stdout | file path)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def run(argv: Optional[list[str]] = None) -> None:
    """Console entry point."""
    args = setup_parser().parse_args(argv)

    try:
        settings = load_settings(args.config, LOG_LEVEL=args.log_level, LOG_FILE=args.log_file)
        setup_logging(settings)
        daemon = build_daemon(settings)
    except (ConfigurationError, OSError) as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logger.info(f"Starting Wallbox Stats Daemon {__version__} (Mode: {settings.COLLECTOR_MODE})")

    if settings.webserver_enabled:
        # uvicorn owns signal handling, the daemon lives in the app lifespan
        app = create_app(daemon.snapshot, settings, lifespan=daemon.lifespan)
        uvicorn.run(
            app,
            host=settings.WEBSERVER_HOST,
            port=settings.WEBSERVER_PORT,
            lifespan="on",
            log_config=None,
        )
        return

    try:
        asyncio.run(daemon.run_until_stopped())
    except KeyboardInterrupt:
        pass
    except Exception:
        # already logged by the daemon
        sys.exit(1)


if __name__ == "__main__":
    run()
