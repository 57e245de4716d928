# --- Standard library imports ---
import time
import logging


# ============================================================
# Cycle phase timing (optional TIMING-level instrumentation)
# ============================================================

class PhaseTimer:
    """
    Measures the phases of one decision cycle (probe, resolve, dispatch).

    Laps are kept in `laps` (label → ms) so callers can inspect them, and
    logged at TIMING level, which is hidden unless LOG_TIMING=true.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.laps: dict[str, float] = {}
        self.cycle_start: float | None = None
        self.lap_start: float | None = None

    def start_cycle(self) -> None:
        now = time.perf_counter()
        self.laps = {}
        self.cycle_start = now
        self.lap_start = now

    def lap(self, label: str) -> None:
        """Record the time elapsed since the previous lap."""
        if self.lap_start is None:
            return

        now = time.perf_counter()
        delta_ms = (now - self.lap_start) * 1000
        self.laps[label] = delta_ms
        self.logger.timing(f"Timing | {label:<28} [{delta_ms:8.1f} ms]")
        self.lap_start = now

    def end_cycle(self) -> float | None:
        """Log and return the end-to-end duration in ms."""
        if self.cycle_start is None:
            return None

        total_ms = (time.perf_counter() - self.cycle_start) * 1000
        self.logger.timing(f"Timing | {'decision cycle':<28} [{total_ms:8.1f} ms]")
        self.cycle_start = None
        self.lap_start = None
        return total_ms
