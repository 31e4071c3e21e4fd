"""
Feed Emission Loop
Runs the feed generator on a fixed cadence in a background thread and hands
every transaction to the registered sinks (socket broadcast, persistence).
"""

import threading
import time
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from feed_be.config_validator import DEFAULT_FEED_INTERVAL_MS
from feed_be.exceptions import ConfigNotInitializedException

logger = logging.getLogger(__name__)

Sink = Callable[[Dict[str, Any]], None]


class FeedLoop:
    """Ticks the generator every interval_ms and fans transactions out to sinks"""

    def __init__(self, generator=None, sinks: Optional[List[Sink]] = None,
                 interval_ms: int = DEFAULT_FEED_INTERVAL_MS, workers: int = 2):
        self.generator = generator
        self.sinks: List[Sink] = list(sinks or [])
        self.interval_ms = interval_ms
        self.workers = workers
        self.running = False
        self.loop_thread = None
        self._stop_event = threading.Event()
        self._executor: Optional[ThreadPoolExecutor] = None
        self.emitted_count = 0
        self.last_emitted_at: Optional[float] = None

    def start(self):
        """Start the emission loop in a background thread"""
        if self.running:
            logger.warning("Feed loop is already running")
            return
        if self.generator is None:
            raise RuntimeError("Feed loop has no generator")

        self.running = True
        self._stop_event.clear()
        self._executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix='feed-sink')
        self.loop_thread = threading.Thread(target=self._run_loop, name='feed-loop', daemon=True)
        self.loop_thread.start()
        logger.info(f"Feed loop started (interval {self.interval_ms}ms, {len(self.sinks)} sinks)")

    def stop(self):
        """Stop the emission loop; no tick starts after this returns"""
        if not self.running:
            return
        self.running = False
        self._stop_event.set()
        if self.loop_thread:
            self.loop_thread.join(timeout=5)
            self.loop_thread = None
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None
        logger.info("Feed loop stopped")

    def _run_loop(self):
        """Main loop - runs in background thread"""
        interval = self.interval_ms / 1000.0
        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            try:
                self.run_tick()
            except Exception as e:
                logger.error(f"Error in feed loop: {e}", exc_info=True)

            next_tick += interval
            delay = next_tick - time.monotonic()
            if delay < 0:
                # Fell behind, do not burst to catch up
                next_tick = time.monotonic()
                delay = 0
            self._stop_event.wait(delay)

    def run_tick(self) -> Optional[Dict[str, Any]]:
        """Generate one transaction and dispatch it. Returns the transaction, if any."""
        try:
            transaction = self.generator.tick()
        except ConfigNotInitializedException:
            logger.warning("Feed tick skipped: game config cache not initialized")
            return None

        if transaction is None:
            return None

        self.emitted_count += 1
        self.last_emitted_at = time.time()
        self._dispatch(transaction)
        return transaction

    def _dispatch(self, transaction: Dict[str, Any]):
        for sink in self.sinks:
            if self._executor is not None:
                self._executor.submit(self._run_sink, sink, transaction)
            else:
                self._run_sink(sink, transaction)

    @staticmethod
    def _run_sink(sink: Sink, transaction: Dict[str, Any]):
        try:
            sink(dict(transaction))
        except Exception as e:
            logger.error(f"Feed sink {getattr(sink, '__name__', sink)!r} failed: {e}", exc_info=True)

    def status(self) -> Dict[str, Any]:
        return {
            'running': self.running,
            'interval_ms': self.interval_ms,
            'sinks': len(self.sinks),
            'emitted_count': self.emitted_count,
            'last_emitted_at': self.last_emitted_at,
        }


def persist_transaction_sink(app) -> Sink:
    """Sink that stores each generated transaction as a simulation row."""
    def persist_transaction(transaction: Dict[str, Any]):
        from feed_be import storage
        from feed_be.models import db

        with app.app_context():
            try:
                storage.create_transaction({**transaction, 'is_simulation': True})
            except Exception:
                db.session.rollback()
                raise
    return persist_transaction


# Global instance
feed_loop = FeedLoop()


def get_feed_loop():
    """Get the global feed loop instance"""
    return feed_loop
