from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Protocol, Sequence

from .model import EmployeeSchedule


class EmployeeScheduleRepository(Protocol):
    def list_all(self) -> Sequence[EmployeeSchedule]:
        raise NotImplementedError

    def list_active(self) -> Sequence[EmployeeSchedule]:
        raise NotImplementedError

    def list_by_employee(self, employee_id: str) -> Sequence[EmployeeSchedule]:
        raise NotImplementedError

    def list_by_department(self, department: str) -> Sequence[EmployeeSchedule]:
        """Schedules whose template belongs to `department`."""

        raise NotImplementedError

    def get(self, schedule_id: int) -> Optional[EmployeeSchedule]:
        raise NotImplementedError

    def find_active(self, employee_id: str, template_id: int, *, for_update: bool = False) -> Optional[EmployeeSchedule]:
        raise NotImplementedError

    def create(
        self,
        *,
        employee_id: str,
        template_id: int,
        days: Sequence[str],
        schedule_dates: Mapping[str, Sequence[str]],
        start_date: Optional[date],
        end_date: Optional[date],
        assigned_by: Optional[str],
    ) -> int:
        raise NotImplementedError

    def update(self, schedule_id: int, *, fields: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, schedule_id: int) -> bool:
        raise NotImplementedError

    def deactivate_ended_before(self, day: date) -> int:
        """Set Active rows with end_date < `day` to Inactive. Returns rows changed."""

        raise NotImplementedError
