"""In-memory window store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a single lock guards the read-modify-write of every key.
"""

from __future__ import annotations

import logging
import threading

from authgate.adapters.rate_limit.base import AbstractWindowStore, WindowState

logger = logging.getLogger(__name__)


class InMemoryWindowStore(AbstractWindowStore):
    """Dict-backed store for fixed-window counters.

    Expired entries are reset lazily when their key is seen again, and
    evicted in bulk by a sweep that runs at most once per
    ``sweep_interval_seconds`` during ``increment`` calls.
    """

    def __init__(self, *, sweep_interval_seconds: float = 60.0) -> None:
        """Initialize the store.

        Args:
            sweep_interval_seconds: Minimum delay between two lazy sweeps.
                Use 0 to sweep on every increment.

        Raises:
            ValueError: If sweep_interval_seconds is negative.
        """
        if sweep_interval_seconds < 0:
            raise ValueError("sweep_interval_seconds must be >= 0")

        self._sweep_interval = sweep_interval_seconds
        self._lock = threading.Lock()
        self._state_by_key: dict[str, WindowState] = {}
        self._last_sweep: float | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def increment(self, key: str, *, now: float, window_seconds: float) -> WindowState:
        with self._lock:
            self._maybe_sweep_locked(now, window_seconds)

            state = self._state_by_key.get(key)
            if state is None or now >= state.window_start + window_seconds:
                state = WindowState(count=0, window_start=now)
                self._state_by_key[key] = state

            state.count += 1
            return WindowState(count=state.count, window_start=state.window_start)

    def get(self, key: str) -> WindowState | None:
        with self._lock:
            state = self._state_by_key.get(key)
            if state is None:
                return None
            return WindowState(count=state.count, window_start=state.window_start)

    def reset(self, key: str) -> None:
        with self._lock:
            self._state_by_key.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._state_by_key.clear()
            self._last_sweep = None

    def sweep(self, *, now: float, window_seconds: float) -> int:
        with self._lock:
            return self._sweep_locked(now, window_seconds)

    def _maybe_sweep_locked(self, now: float, window_seconds: float) -> None:
        if self._last_sweep is None:
            self._last_sweep = now
            return
        if now - self._last_sweep < self._sweep_interval:
            return
        self._sweep_locked(now, window_seconds)

    def _sweep_locked(self, now: float, window_seconds: float) -> int:
        expired_keys = [
            key
            for key, state in self._state_by_key.items()
            if now >= state.window_start + window_seconds
        ]
        for key in expired_keys:
            del self._state_by_key[key]
        self._last_sweep = now

        if expired_keys:
            logger.debug(
                "rate_limit.store.swept",
                extra={"evicted": len(expired_keys), "size": len(self._state_by_key)},
            )
        return len(expired_keys)
