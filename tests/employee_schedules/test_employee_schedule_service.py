from __future__ import annotations

from datetime import date

import pytest

from src.warehouse_scheduling.warehouse_scheduling.core.enums import RecordStatus, Role
from src.warehouse_scheduling.warehouse_scheduling.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from src.warehouse_scheduling.warehouse_scheduling.users.service import SessionUser


@pytest.fixture
def template(template_service):
    return template_service.create_template(
        {
            "department": "Zone A",
            "shift_name": "Morning",
            "start_time": "08:00",
            "end_time": "16:00",
            "days": ["Monday", "Wednesday", "Friday"],
        }
    )


def _assign(service, template, days, **extra):
    data = {"employee_id": "001", "template_id": template.id, "days": days, "assigned_by": "admin"}
    data.update(extra)
    return service.assign_schedule_to_employee(data)


def test_assign_creates_schedule_with_current_week(employee_schedule_service, template):
    s = _assign(employee_schedule_service, template, ["Monday", "Wednesday"])

    assert s.days == ("Monday", "Wednesday")
    assert s.schedule_dates == {"Monday": ["2024-01-01"], "Wednesday": ["2024-01-03"]}
    assert s.start_date == date(2024, 1, 1)
    assert s.end_date is None
    assert s.status == RecordStatus.ACTIVE


def test_repeat_assignment_merges_days(employee_schedule_service, schedules_repo, template):
    first = _assign(employee_schedule_service, template, ["Monday"])
    second = _assign(employee_schedule_service, template, ["Wednesday"], assigned_by="sam")

    assert second.id == first.id
    assert len(schedules_repo.rows) == 1
    assert second.days == ("Monday", "Wednesday")
    assert second.schedule_dates == {"Monday": ["2024-01-01"], "Wednesday": ["2024-01-03"]}
    assert second.assigned_by == "sam"


def test_identical_assignment_is_idempotent(employee_schedule_service, schedules_repo, template):
    _assign(employee_schedule_service, template, ["Monday", "Friday"])
    again = _assign(employee_schedule_service, template, ["Monday", "Friday"])

    assert len(schedules_repo.rows) == 1
    assert again.days == ("Monday", "Friday")


@pytest.mark.parametrize(
    "data,message",
    [
        ({"template_id": 1, "days": ["Monday"]}, "employee_id is required"),
        ({"employee_id": "001", "days": ["Monday"]}, "template_id is required"),
        ({"employee_id": "001", "template_id": 1}, "days array is required"),
        ({"employee_id": "001", "template_id": 1, "days": []}, "days array is required"),
    ],
)
def test_assign_requires_fields(employee_schedule_service, template, data, message):
    with pytest.raises(ValidationError, match=message):
        employee_schedule_service.assign_schedule_to_employee(data)


def test_assign_unknown_template(employee_schedule_service):
    with pytest.raises(NotFoundError):
        employee_schedule_service.assign_schedule_to_employee(
            {"employee_id": "001", "template_id": 404, "days": ["Monday"]}
        )


def test_past_start_date_is_clamped_to_today(employee_schedule_service, template):
    s = _assign(employee_schedule_service, template, ["Monday"], start_date="2023-12-01")
    assert s.start_date == date(2024, 1, 1)
    assert s.schedule_dates == {"Monday": ["2024-01-01"]}


def test_end_before_start_rejected(employee_schedule_service, template):
    with pytest.raises(ValidationError, match="end_date cannot be before start_date"):
        _assign(employee_schedule_service, template, ["Monday"], start_date="2024-01-10", end_date="2024-01-05")


def test_end_before_clamped_start_rejected(employee_schedule_service, template):
    with pytest.raises(ValidationError):
        _assign(employee_schedule_service, template, ["Monday"], start_date="2023-12-01", end_date="2023-12-20")


def test_explicit_window_bounds_dates(employee_schedule_service, template):
    s = _assign(employee_schedule_service, template, ["Monday", "Friday"], start_date="2024-01-02", end_date="2024-01-04")
    assert s.schedule_dates == {"Monday": [], "Friday": []}
    assert s.end_date == date(2024, 1, 4)


def test_remove_some_days(employee_schedule_service, template):
    s = _assign(employee_schedule_service, template, ["Monday", "Wednesday"])
    updated = employee_schedule_service.remove_specific_days(s.id, ["Monday"])

    assert updated.days == ("Wednesday",)
    assert updated.schedule_dates == {"Wednesday": ["2024-01-03"]}


def test_remove_all_days_deletes_row(employee_schedule_service, schedules_repo, template):
    s = _assign(employee_schedule_service, template, ["Monday"])
    assert employee_schedule_service.remove_specific_days(s.id, ["Monday"]) is None
    assert schedules_repo.get(s.id) is None


def test_remove_days_missing_schedule(employee_schedule_service):
    with pytest.raises(NotFoundError):
        employee_schedule_service.remove_specific_days(99, ["Monday"])


def test_regenerate_only_lapsed_schedules(employee_schedule_service, schedules_repo, template):
    lapsed_id = schedules_repo.create(
        employee_id="001",
        template_id=template.id,
        days=["Monday", "Friday"],
        schedule_dates={"Monday": ["2023-12-25"], "Friday": ["2023-12-29"]},
        start_date=date(2023, 12, 25),
        end_date=None,
        assigned_by="admin",
    )
    current_id = schedules_repo.create(
        employee_id="002",
        template_id=template.id,
        days=["Friday"],
        schedule_dates={"Friday": ["2024-01-05"]},
        start_date=date(2024, 1, 1),
        end_date=None,
        assigned_by="admin",
    )

    assert employee_schedule_service.regenerate_weekly_schedules() == 1
    assert schedules_repo.get(lapsed_id).schedule_dates == {"Monday": ["2024-01-01"], "Friday": ["2024-01-05"]}
    assert schedules_repo.get(current_id).schedule_dates == {"Friday": ["2024-01-05"]}


def test_regenerate_respects_end_date(employee_schedule_service, schedules_repo, template):
    sid = schedules_repo.create(
        employee_id="001",
        template_id=template.id,
        days=["Monday", "Friday"],
        schedule_dates={"Monday": ["2023-12-25"]},
        start_date=date(2023, 12, 25),
        end_date=date(2024, 1, 3),
        assigned_by="admin",
    )
    assert employee_schedule_service.regenerate_weekly_schedules() == 1
    assert schedules_repo.get(sid).schedule_dates == {"Monday": ["2024-01-01"], "Friday": []}


def test_deactivate_expired(employee_schedule_service, schedules_repo, template):
    old = schedules_repo.create(
        employee_id="001",
        template_id=template.id,
        days=["Monday"],
        schedule_dates={},
        start_date=date(2023, 12, 1),
        end_date=date(2023, 12, 31),
        assigned_by="admin",
    )
    ongoing = _assign(employee_schedule_service, template, ["Monday"], employee_id="002")

    assert employee_schedule_service.deactivate_expired_schedules() == 1
    assert schedules_repo.get(old).status == RecordStatus.INACTIVE
    assert schedules_repo.get(ongoing.id).status == RecordStatus.ACTIVE


def test_update_days_regenerates_dates(employee_schedule_service, template):
    s = _assign(employee_schedule_service, template, ["Monday"])
    updated = employee_schedule_service.update_schedule(s.id, {"days": ["Friday"]})

    assert updated.days == ("Friday",)
    assert updated.schedule_dates == {"Friday": ["2024-01-05"]}


def test_team_leader_cannot_touch_own_schedule(employee_schedule_service, template):
    own = _assign(employee_schedule_service, template, ["Monday"], employee_id="003")
    leader = SessionUser(user_id=2, name="Ana", role=Role.TEAM_LEADER, employee_id="003", department="Zone A")

    with pytest.raises(AuthorizationError):
        employee_schedule_service.delete_schedule(own.id, actor=leader)
    with pytest.raises(AuthorizationError):
        employee_schedule_service.update_schedule(own.id, {"days": ["Friday"]}, actor=leader)
    with pytest.raises(AuthorizationError):
        employee_schedule_service.remove_specific_days(own.id, ["Monday"], actor=leader)


def test_team_leader_may_edit_team_member(employee_schedule_service, schedules_repo, template):
    member = _assign(employee_schedule_service, template, ["Monday"])
    leader = SessionUser(user_id=2, name="Ana", role=Role.TEAM_LEADER, employee_id="003", department="Zone A")

    employee_schedule_service.delete_schedule(member.id, actor=leader)
    assert schedules_repo.get(member.id) is None


def test_todays_schedule_prefers_published_templates(employee_schedule_service, template_service):
    published = template_service.create_template(
        {
            "department": "Zone A",
            "shift_name": "Early",
            "start_time": "06:00",
            "end_time": "14:00",
            "days": ["Monday"],
            "publish_status": "Published",
            "employee_ids": ["001"],
        }
    )
    today = employee_schedule_service.get_todays_schedule("001")
    assert today["template_id"] == published.id
    assert today["date"] == "2024-01-01"


def test_todays_schedule_from_direct_assignment(employee_schedule_service, template):
    s = _assign(employee_schedule_service, template, ["Monday"], employee_id="002")
    today = employee_schedule_service.get_todays_schedule("002")

    assert today["schedule_id"] == s.id
    assert today["shift_name"] == "Morning"
    assert today["day"] == "Monday"


def test_draft_assignment_is_not_todays_schedule(employee_schedule_service, template_service, template):
    template_service.assign_employees_to_template(template.id, ["002"], "admin")
    with pytest.raises(NotFoundError):
        employee_schedule_service.get_todays_schedule("002")


def test_no_schedule_today(employee_schedule_service, template):
    _assign(employee_schedule_service, template, ["Wednesday"], employee_id="002")
    with pytest.raises(NotFoundError, match="No schedule for today"):
        employee_schedule_service.get_todays_schedule("002")


def test_list_by_department(employee_schedule_service, template):
    _assign(employee_schedule_service, template, ["Monday"])
    assert [s.employee_id for s in employee_schedule_service.list_by_department("Zone A")] == ["001"]
    assert employee_schedule_service.list_by_department("Zone B") == []
