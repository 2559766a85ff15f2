from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from ..core.enums import PublishStatus
from .model import ScheduleTemplate, TemplateAssignment


class TemplateRepository(Protocol):
    """Schedule templates and their employee assignments.

    Every returned template carries its `assigned_employees` loaded from the
    assignment table.
    """

    def list_active(self) -> Sequence[ScheduleTemplate]:
        """Active templates ordered by department, shift name."""

        raise NotImplementedError

    def list_published(self) -> Sequence[ScheduleTemplate]:
        raise NotImplementedError

    def list_by_department(self, department: str) -> Sequence[ScheduleTemplate]:
        raise NotImplementedError

    def list_drafts(self) -> Sequence[ScheduleTemplate]:
        """Draft templates that are not flagged for deletion."""

        raise NotImplementedError

    def list_pending_deletion(self) -> Sequence[ScheduleTemplate]:
        raise NotImplementedError

    def find_draft_by_shift(
        self, *, department: str, shift_name: str, start_time: str, end_time: str
    ) -> Optional[ScheduleTemplate]:
        raise NotImplementedError

    def get(self, template_id: int, *, for_update: bool = False) -> Optional[ScheduleTemplate]:
        raise NotImplementedError

    def create(
        self,
        *,
        department: str,
        shift_name: str,
        start_time: str,
        end_time: str,
        days: Sequence[str],
        specific_date: Optional[date],
        member_limit: Optional[int],
        day_limits: Optional[Mapping[str, int]],
        created_by: Optional[str],
        publish_status: PublishStatus,
        published_at: Optional[datetime] = None,
        published_by: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update(self, template_id: int, *, fields: Mapping[str, Any]) -> bool:
        """Update the given columns only. Unknown keys are a programming error."""

        raise NotImplementedError

    def mark_pending_deletion(self, template_id: int) -> bool:
        raise NotImplementedError

    def delete(self, template_id: int) -> bool:
        raise NotImplementedError

    def publish(self, template_ids: Iterable[int], *, published_by: str, published_at: datetime) -> int:
        raise NotImplementedError

    def count_by_status(self) -> dict[str, int]:
        raise NotImplementedError

    def add_assignment(
        self, template_id: int, *, employee_id: str, assigned_by: Optional[str], assigned_date: datetime
    ) -> bool:
        """Insert unless the (template, employee) pair exists. True when inserted."""

        raise NotImplementedError

    def remove_assignments(self, template_id: int, employee_ids: Iterable[str]) -> int:
        raise NotImplementedError

    def delete_assignments(self, template_id: int) -> int:
        raise NotImplementedError

    def list_assignments(self, template_id: int) -> Sequence[TemplateAssignment]:
        raise NotImplementedError
