"""
Run status reporting: heartbeats, counters and cooperative stop.

The engine never blocks on the reporter; it only polls ``send_heartbeat`` and
stops at the next safe point once it returns False.
"""
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.logger import get_structured_logger

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)


@dataclass
class RunStats:
    jobs_found: int = 0
    jobs_applied: int = 0
    jobs_failed: int = 0
    jobs_skipped: int = 0


class StatusReporter:
    """Tracks run progress and exposes the stop signal."""

    def __init__(self, stop_file: Optional[Path] = None):
        self.stop_file = Path(stop_file) if stop_file else None
        self.stats = RunStats()
        self.stopped = False
        self.completed = False
        self.last_stage: Optional[str] = None

    def start_session(self) -> None:
        self.stopped = False
        self.completed = False
        self.stats = RunStats()
        if self.stop_file and self.stop_file.exists():
            # A leftover stop file from a previous run must not end this one
            self.stop_file.unlink()
        structured_logger.info("session_started")

    def request_stop(self, reason: str = "User requested stop") -> None:
        if not self.stopped:
            self.stopped = True
            structured_logger.info("session_stop_requested", reason=reason, **asdict(self.stats))

    def _stop_file_present(self) -> bool:
        return bool(self.stop_file and self.stop_file.exists())

    def send_heartbeat(self, stage: str, details: Optional[Dict[str, Any]] = None) -> bool:
        """
        Report liveness for ``stage``.

        Returns:
            False once a stop was requested, True otherwise.
        """
        if self._stop_file_present():
            self.request_stop(f"Stop file found: {self.stop_file}")
        if self.stopped:
            logger.debug("Skipping heartbeat - session stopped")
            return False
        self.last_stage = stage
        structured_logger.debug("heartbeat", stage=stage, **(details or {}), **asdict(self.stats))
        return True

    def increment_jobs_found(self, count: int) -> None:
        self.stats.jobs_found += count

    def record_applied(self) -> None:
        self.stats.jobs_applied += 1

    def record_failed(self) -> None:
        self.stats.jobs_failed += 1

    def record_skipped(self) -> None:
        self.stats.jobs_skipped += 1

    def complete_session(self, success: bool, message: Optional[str] = None) -> None:
        self.completed = True
        message = message or ("Session completed successfully" if success else "Session failed")
        log = structured_logger.info if success else structured_logger.warning
        log("session_complete", success=success, message=message, **asdict(self.stats))
