"""
Poller Service - Periodic lead sync.

Fires a sync run at startup and then on a fixed interval. Runs never
overlap: a tick that arrives while a run is in flight is skipped.
"""

import asyncio
import signal
from datetime import datetime, timezone
from typing import Optional

from .config import SyncConfig
from .ghl_client import GHLClient
from .log import get_logger
from .models import SyncRun
from .structurely_client import StructurelyClient
from .sync_engine import SyncEngine

logger = get_logger(__name__)


class Poller:
    """Async polling service for the lead sync."""

    def __init__(self, engine: SyncEngine, interval: Optional[float] = None):
        self.engine = engine
        self.interval = interval if interval is not None else engine.config.sync_interval
        self.running = False

        self._lock = asyncio.Lock()
        self._inflight: set[asyncio.Task] = set()
        self._stopped: Optional[asyncio.Event] = None

        # Stats
        self._runs = 0
        self._skipped_ticks = 0
        self._errors = 0
        self._last_run: Optional[SyncRun] = None
        self._last_tick: Optional[datetime] = None

    async def tick(self) -> Optional[SyncRun]:
        """Run one sync unless another run is still in flight."""
        self._last_tick = datetime.now(timezone.utc)

        if self._lock.locked():
            self._skipped_ticks += 1
            logger.warning("Previous sync still running, skipping this tick")
            return None

        async with self._lock:
            try:
                run = await self.engine.run_sync()
            except Exception as e:
                self._errors += 1
                logger.exception(f"Sync run error: {e}")
                return None

            self._runs += 1
            self._last_run = run
            if run.aborted:
                self._errors += 1
            return run

    def _spawn_tick(self) -> None:
        task = asyncio.create_task(self.tick())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def run(self, max_ticks: Optional[int] = None):
        """Start the polling loop."""
        self.running = True
        self._stopped = asyncio.Event()

        loop = asyncio.get_running_loop()
        handled = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
                handled.append(sig)
            except (NotImplementedError, RuntimeError):
                # Not available off the main thread or on Windows
                pass

        logger.info("=" * 60)
        logger.info("Lead Sync Poller Starting")
        logger.info("=" * 60)
        logger.info(f"  Sync interval: {self.interval}s")
        logger.info(f"  Page size: {self.engine.config.page_size}")
        logger.info(f"  Recency window: {self.engine.config.recency_window}")
        logger.info("=" * 60)

        ticks = 0
        try:
            while self.running:
                # Timer is independent of how the previous run went
                self._spawn_tick()
                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break
                try:
                    await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            if self._inflight:
                logger.info("Waiting for in-flight sync to finish...")
                await asyncio.gather(*self._inflight, return_exceptions=True)
            self.running = False
            for sig in handled:
                loop.remove_signal_handler(sig)

        logger.info("Poller stopped")
        logger.info(f"Final stats: {self._runs} runs, {self._skipped_ticks} skipped ticks, {self._errors} errors")

    def stop(self):
        """Stop the poller after the current run."""
        logger.info("Stopping poller...")
        self.running = False
        if self._stopped is not None:
            self._stopped.set()

    def get_status(self) -> dict:
        """Get current poller status."""
        return {
            'running': self.running,
            'interval': self.interval,
            'stats': {
                'runs': self._runs,
                'skipped_ticks': self._skipped_ticks,
                'errors': self._errors,
            },
            'last_tick': self._last_tick.isoformat() if self._last_tick else None,
            'last_run': self._last_run.summary() if self._last_run else None,
        }


async def run_service(config: SyncConfig, max_ticks: Optional[int] = None) -> None:
    """Build the API clients and run the poller until stopped."""
    async with StructurelyClient(
        config.structurely_api_key,
        base_url=config.structurely_base_url,
        timeout=config.request_timeout,
    ) as leads, GHLClient(
        config.ghl_api_key,
        base_url=config.ghl_base_url,
        timeout=config.request_timeout,
    ) as contacts:
        engine = SyncEngine(config, leads=leads, contacts=contacts)
        await Poller(engine).run(max_ticks=max_ticks)


def run_poller(config: SyncConfig):
    """Entry point for running the poller (blocking)."""
    try:
        asyncio.run(run_service(config))
    except KeyboardInterrupt:
        logger.info("Poller stopped by user")
