from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import RecordStatus


@dataclass(frozen=True)
class EmployeeSchedule:
    """Direct assignment of an employee to a template on a subset of its days.

    `schedule_dates` maps weekday name -> ISO dates materialized for the
    current rolling week.
    """

    id: int
    employee_id: str
    template_id: int
    days: tuple[str, ...]
    schedule_dates: dict[str, list[str]] = field(default_factory=dict)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    assigned_by: Optional[str] = None
    status: RecordStatus = RecordStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "template_id": self.template_id,
            "days": list(self.days),
            "schedule_dates": {k: list(v) for k, v in self.schedule_dates.items()},
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "assigned_by": self.assigned_by,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
