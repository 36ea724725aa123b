import time
from collections.abc import Callable
from datetime import datetime

from docshare.config.settings import Settings
from docshare.logging.logger import Log
from docshare.tokens.base import BaseTokenStore
from docshare.tokens.lifecycle import utcnow


class ExpirySweeper:
    """Poll loop: sweep expired download tokens -> sleep."""

    def __init__(
        self,
        token_store: BaseTokenStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._token_store = token_store
        self._settings = settings
        self._clock = clock

    def run(self, max_sweeps: int | None = None) -> None:
        """Main loop. Runs forever until interrupted.

        If max_sweeps is set, stop after that many sweeps (for testing).
        """
        Log.info("Expiry sweeper started")
        sweeps = 0
        try:
            while True:
                self.sweep_once()
                sweeps += 1
                if max_sweeps is not None and sweeps >= max_sweeps:
                    break
                time.sleep(self._settings.sweep_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Expiry sweeper shutting down gracefully")

    def sweep_once(self) -> int | None:
        """Delete expired tokens once. Database errors are logged, not raised."""
        try:
            deleted = self._token_store.delete_expired(self._clock())
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
        if deleted:
            Log.info(f"Deleted {deleted} expired download tokens")
        else:
            Log.debug("No expired download tokens")
        return deleted
