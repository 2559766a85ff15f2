from __future__ import annotations

import logging
from contextlib import nullcontext
from datetime import date, timedelta
from typing import Any, Callable, ContextManager, Mapping, Optional, Sequence

from ..common.datetime_utils import Clock, format_iso_date
from ..common.validators import require_int, require_non_empty, require_weekdays
from ..core.constants import DEFAULT_ASSIGNED_BY, ROLLING_WINDOW_DAYS
from ..core.enums import RecordStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..scheduling.dates import generate_schedule_dates, has_lapsed, todays_schedule
from ..templates.repository import TemplateRepository
from ..templates.service import TemplateService
from ..users.service import SessionUser
from .model import EmployeeSchedule
from .repository import EmployeeScheduleRepository

logger = logging.getLogger(__name__)


class EmployeeScheduleService:
    """Direct employee-to-template assignments with materialized weekly dates."""

    def __init__(
        self,
        schedules: EmployeeScheduleRepository,
        templates: TemplateRepository,
        template_service: TemplateService,
        *,
        clock: Clock,
        transaction: Callable[[], ContextManager] = nullcontext,
    ):
        self._schedules = schedules
        self._templates = templates
        self._template_service = template_service
        self._clock = clock
        self._transaction = transaction

    def list_schedules(self) -> Sequence[EmployeeSchedule]:
        return self._schedules.list_all()

    def list_by_employee(self, employee_id: str) -> Sequence[EmployeeSchedule]:
        return self._schedules.list_by_employee(require_non_empty(employee_id, "employee_id"))

    def list_by_department(self, department: str) -> Sequence[EmployeeSchedule]:
        return self._schedules.list_by_department(require_non_empty(department, "department"))

    def get_schedule(self, schedule_id: int) -> EmployeeSchedule:
        schedule = self._schedules.get(int(schedule_id))
        if schedule is None:
            raise NotFoundError("Schedule not found")
        return schedule

    def find_active(self, employee_id: str, template_id: int) -> Optional[EmployeeSchedule]:
        return self._schedules.find_active(str(employee_id), int(template_id))

    def assigned_days(self, employee_id: str) -> set[str]:
        """Weekdays the employee currently works through any Active schedule."""

        return {
            d
            for s in self._schedules.list_by_employee(str(employee_id))
            if s.is_active
            for d in s.days
        }

    def assign_schedule_to_employee(self, data: Mapping[str, Any]) -> EmployeeSchedule:
        """Create the assignment, or merge `days` into the existing Active one.

        A start date in the past is moved to today.
        """

        employee_id = require_non_empty(data.get("employee_id"), "employee_id")
        template_id = require_int(data.get("template_id"), "template_id")
        days = require_weekdays(data.get("days"))

        template = self._templates.get(template_id)
        if template is None:
            raise NotFoundError("Template not found")

        start, end = self._window(data.get("start_date"), data.get("end_date"))
        assigned_by = str(data.get("assigned_by") or DEFAULT_ASSIGNED_BY)

        with self._transaction():
            existing = self._schedules.find_active(employee_id, template.id, for_update=True)
            if existing is not None:
                merged = list(existing.days) + [d for d in days if d not in existing.days]
                self._schedules.update(
                    existing.id,
                    fields={
                        "days": merged,
                        "schedule_dates": generate_schedule_dates(merged, start, end, clock=self._clock),
                        "start_date": start,
                        "end_date": end,
                        "assigned_by": assigned_by,
                    },
                )
                schedule_id = existing.id
                logger.info("Merged days %s into schedule %s for employee %s", days, existing.id, employee_id)
            else:
                schedule_id = self._schedules.create(
                    employee_id=employee_id,
                    template_id=template.id,
                    days=days,
                    schedule_dates=generate_schedule_dates(days, start, end, clock=self._clock),
                    start_date=start,
                    end_date=end,
                    assigned_by=assigned_by,
                )
                logger.info("Created schedule %s for employee %s on template %s", schedule_id, employee_id, template.id)
            return self.get_schedule(schedule_id)

    def update_schedule(
        self, schedule_id: int, updates: Mapping[str, Any], *, actor: Optional[SessionUser] = None
    ) -> EmployeeSchedule:
        schedule = self.get_schedule(schedule_id)
        self._guard_own_schedule(schedule, actor)

        fields: dict[str, Any] = {}
        days = list(schedule.days)
        if updates.get("days") is not None:
            days = require_weekdays(updates.get("days"))
            fields["days"] = days
        if "assigned_by" in updates:
            fields["assigned_by"] = updates.get("assigned_by") or None
        if updates.get("status"):
            try:
                fields["status"] = RecordStatus(str(updates["status"]).capitalize())
            except ValueError:
                raise ValidationError(f"Invalid status: {updates['status']!r}")

        window_changed = "start_date" in updates or "end_date" in updates
        if window_changed:
            start, end = self._window(
                updates.get("start_date", schedule.start_date),
                updates.get("end_date", schedule.end_date),
            )
            fields["start_date"], fields["end_date"] = start, end
        else:
            start = max(schedule.start_date or self._clock.today(), self._clock.today())
            end = schedule.end_date

        if "days" in fields or window_changed:
            fields["schedule_dates"] = generate_schedule_dates(days, start, end, clock=self._clock)

        if not fields:
            raise ValidationError("No fields to update")

        self._schedules.update(schedule.id, fields=fields)
        return self.get_schedule(schedule.id)

    def delete_schedule(self, schedule_id: int, *, actor: Optional[SessionUser] = None) -> None:
        schedule = self.get_schedule(schedule_id)
        self._guard_own_schedule(schedule, actor)
        self._schedules.delete(schedule.id)
        logger.info("Schedule %s deleted", schedule.id)

    def remove_specific_days(
        self, schedule_id: int, days: Any, *, actor: Optional[SessionUser] = None
    ) -> Optional[EmployeeSchedule]:
        """Drop `days`; the row itself is deleted (and None returned) when none remain."""

        schedule = self.get_schedule(schedule_id)
        self._guard_own_schedule(schedule, actor)
        to_remove = set(require_weekdays(days))

        remaining = [d for d in schedule.days if d not in to_remove]
        if not remaining:
            self._schedules.delete(schedule.id)
            logger.info("All days removed from schedule %s, schedule deleted", schedule.id)
            return None

        self._schedules.update(
            schedule.id,
            fields={
                "days": remaining,
                "schedule_dates": {d: list(schedule.schedule_dates.get(d, [])) for d in remaining},
            },
        )
        return self.get_schedule(schedule.id)

    def regenerate_weekly_schedules(self) -> int:
        """Move lapsed Active schedules to a fresh week starting today."""

        today = self._clock.today()
        today_iso = format_iso_date(today)
        count = 0
        for s in self._schedules.list_active():
            if not has_lapsed(s.schedule_dates, today_iso=today_iso):
                continue
            if s.end_date is not None and s.end_date < today:
                # Ended; the expiry pass deactivates it.
                continue
            end = today + timedelta(days=ROLLING_WINDOW_DAYS - 1)
            if s.end_date is not None:
                end = min(end, s.end_date)
            self._schedules.update(
                s.id,
                fields={"schedule_dates": generate_schedule_dates(list(s.days), today, end, clock=self._clock)},
            )
            count += 1

        logger.info("Regenerated %d weekly schedule(s)", count)
        return count

    def deactivate_expired_schedules(self) -> int:
        count = self._schedules.deactivate_ended_before(self._clock.today())
        logger.info("Deactivated %d expired schedule(s)", count)
        return count

    def get_todays_schedule(self, employee_id: str) -> dict:
        employee_id = require_non_empty(employee_id, "employee_id")
        found = self._template_service.get_todays_schedule_from_templates(employee_id)
        if found is not None:
            return found

        for s in self._schedules.list_by_employee(employee_id):
            if not s.is_active:
                continue
            info = todays_schedule(s.schedule_dates, clock=self._clock)
            if info is None:
                continue
            template = self._templates.get(s.template_id)
            return {
                **info,
                "employee_id": s.employee_id,
                "schedule_id": s.id,
                "template_id": s.template_id,
                "department": template.department if template else None,
                "shift_name": template.shift_name if template else None,
                "start_time": template.start_time if template else None,
                "end_time": template.end_time if template else None,
            }
        raise NotFoundError("No schedule for today")

    def _window(self, start_value: Any, end_value: Any) -> tuple[date, Optional[date]]:
        today = self._clock.today()
        start = self._clock.to_local_date(start_value) if start_value else today
        if start < today:
            logger.info("Start date %s is in the past, using %s", start, today)
            start = today
        end = self._clock.to_local_date(end_value) if end_value else None
        if end is not None and end < start:
            raise ValidationError("end_date cannot be before start_date")
        return start, end

    @staticmethod
    def _guard_own_schedule(schedule: EmployeeSchedule, actor: Optional[SessionUser]) -> None:
        if actor is None or actor.role != Role.TEAM_LEADER:
            return
        if actor.employee_id and actor.employee_id == schedule.employee_id:
            raise AuthorizationError("Team leaders cannot modify their own schedule")
