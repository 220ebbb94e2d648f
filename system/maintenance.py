# system/maintenance.py

import threading
from datetime import datetime
from typing import Dict, Optional

from common.config import OTP_CONFIG
from common.utils.logging_config import setup_logging, log_operation, log_context
from common.utils.log_management import configure_service_logging
from common.verification.code_store import CodeStore

# Initialize system logger
logger = setup_logging('system_maintenance', log_level='INFO', log_format='text')

# Add file logging if we're in production
configure_service_logging(logger, log_dir="/app/logs/system")


@log_operation("cleanup_expired_verification_codes")
def cleanup_expired_verification_codes(store: CodeStore, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Clean up expired verification codes.

    Returns:
        Dictionary with counts of deleted items
    """
    with log_context(logger, task="cleanup_expired_verification_codes"):
        deleted = store.sweep(now)

        logger.info("Cleaned up verification codes", extra={
            'verification_codes_deleted': deleted,
            'remaining': len(store)
        })

        return {"verification_codes_deleted": deleted}


class CodeSweeper:
    """
    Background thread that periodically evicts expired codes from a store.

    Sweeping is garbage collection only; expiry is already enforced when a
    code is checked. The thread is never started implicitly: the owner calls
    start() and stop() as part of its lifecycle.
    """

    def __init__(self, store: CodeStore, interval_seconds: float = OTP_CONFIG["sweep_interval_seconds"]):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        self.store = store
        self.interval_seconds = interval_seconds
        self.logger = logger
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sweep thread. Does nothing if it is already running."""
        with self._lock:
            if self.running:
                return

            # One event per run; an old thread stays stopped after a timed-out stop()
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_event,),
                name="verification-code-sweeper",
                daemon=True
            )
            self._thread.start()

        logger.info("Verification code sweeper started", extra={
            'interval_seconds': self.interval_seconds
        })

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the sweep thread to exit and wait for it"""
        with self._lock:
            thread = self._thread
            self._stop_event.set()
            self._thread = None

        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Verification code sweeper did not stop within timeout", extra={
                    'timeout': timeout
                })
            else:
                logger.info("Verification code sweeper stopped")

    def run_once(self, now: Optional[datetime] = None) -> int:
        """Run a single sweep synchronously and return the number of removed codes"""
        return cleanup_expired_verification_codes(self.store, now)["verification_codes_deleted"]

    def _run(self, stop_event: threading.Event) -> None:
        # wait() returns True once stop() is called
        while not stop_event.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception as e:
                logger.error("Error sweeping verification codes", exc_info=True, extra={
                    'error_type': type(e).__name__
                })
