"""Periodic maintenance of employee schedules.

Every interval the expired assignments are deactivated, then lapsed rolling
weeks are regenerated.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ..core.constants import DEFAULT_CLEANUP_INTERVAL_MINUTES
from ..employee_schedules.service import EmployeeScheduleService

logger = logging.getLogger(__name__)


def run_maintenance(service: EmployeeScheduleService) -> dict[str, int]:
    expired = service.deactivate_expired_schedules()
    regenerated = service.regenerate_weekly_schedules()
    return {"expired": expired, "regenerated": regenerated}


class ScheduleMaintenanceJob:
    def __init__(
        self,
        service: EmployeeScheduleService,
        *,
        interval_minutes: int = DEFAULT_CLEANUP_INTERVAL_MINUTES,
    ):
        self._service = service
        self._interval_seconds = max(1, int(interval_minutes)) * 60
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> Optional[dict[str, int]]:
        try:
            result = run_maintenance(self._service)
        except Exception:
            logger.exception("Schedule maintenance run failed")
            return None
        logger.info(
            "Schedule maintenance: %d expired, %d regenerated", result["expired"], result["regenerated"]
        )
        return result

    def _loop(self) -> None:
        logger.info("Schedule maintenance job started (every %ss)", self._interval_seconds)
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self._interval_seconds)
        logger.info("Schedule maintenance job stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="schedule-maintenance", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def start_background_jobs(service: EmployeeScheduleService, interval_minutes: int) -> ScheduleMaintenanceJob:
    job = ScheduleMaintenanceJob(service, interval_minutes=interval_minutes)
    job.start()
    return job
