from __future__ import annotations

from src.warehouse_scheduling.warehouse_scheduling.core.enums import NotificationType, PublishStatus


def _draft(template_service, **overrides):
    data = {
        "department": "Zone A",
        "shift_name": "Morning",
        "start_time": "08:00",
        "end_time": "16:00",
        "days": ["Monday", "Wednesday"],
    }
    data.update(overrides)
    return template_service.create_template(data)


def test_nothing_pending_is_a_no_op(publish_service, events, transaction):
    result = publish_service.publish("admin")

    assert result["count"] == 0
    assert result["message"] == "No changes to publish"
    assert events.emitted == []
    assert transaction.depth == 0


def test_publish_drafts_and_create_team_leader_schedule(publish_service, template_service, schedules_repo, events, clock):
    t = _draft(template_service)
    result = publish_service.publish("admin")

    assert result["published"] == 1
    assert result["deleted"] == 0
    assert result["departments"] == ["Zone A"]

    published = template_service.get_template(t.id)
    assert published.publish_status == PublishStatus.PUBLISHED
    assert published.published_by == "admin"
    assert published.published_at == clock.wall_time()

    leader_rows = schedules_repo.list_by_employee("003")
    assert len(leader_rows) == 1
    assert leader_rows[0].template_id == t.id
    assert leader_rows[0].days == ("Monday", "Wednesday")
    assert leader_rows[0].schedule_dates == {"Monday": ["2024-01-01"], "Wednesday": ["2024-01-03"]}

    assert events.names()[-1] == "schedules:published"
    assert events.emitted[-1][1]["published"] == 1


def test_publishing_twice_keeps_one_leader_schedule(publish_service, template_service, schedules_repo):
    t = _draft(template_service)
    publish_service.publish("admin")
    template_service.update_template(t.id, {"end_time": "17:00"})

    assert publish_service.publish("admin")["count"] == 0
    assert len(schedules_repo.list_by_employee("003")) == 1


def test_first_publish_does_not_notify_leader_without_shifts(publish_service, template_service, notifications_repo):
    _draft(template_service)
    publish_service.publish("admin")
    assert notifications_repo.list_for_user(2) == []


def test_overlapping_draft_replaces_published_template(
    publish_service, template_service, templates_repo, schedules_repo, notifications_repo
):
    old = _draft(template_service)
    publish_service.publish("admin")

    new = _draft(template_service, shift_name="Night", start_time="20:00", end_time="04:00", days=["Monday"])
    result = publish_service.publish("sam")

    assert result["replaced"] == 1
    assert templates_repo.get(old.id) is None
    assert [s.template_id for s in schedules_repo.list_by_employee("003")] == [new.id]

    sent = notifications_repo.list_for_user(2)
    assert len(sent) == 1
    assert sent[0].type == NotificationType.SCHEDULE_PUBLISHED
    assert "Changed:" in sent[0].message
    assert sent[0].created_by == "sam"


def test_non_overlapping_draft_leaves_published_template(publish_service, template_service, templates_repo):
    old = _draft(template_service)
    publish_service.publish("admin")

    _draft(template_service, shift_name="Night", start_time="20:00", end_time="04:00", days=["Friday"])
    result = publish_service.publish("admin")

    assert result["replaced"] == 0
    assert templates_repo.get(old.id) is not None


def test_pending_deletion_is_applied_and_announced(
    publish_service, template_service, templates_repo, notifications_repo, events
):
    t = _draft(template_service, publish_status="Published")
    template_service.delete_template(t.id)

    result = publish_service.publish("admin")

    assert result["deleted"] == 1
    assert result["published"] == 0
    assert result["count"] == 1
    assert templates_repo.get(t.id) is None
    assert templates_repo.list_assignments(t.id) == []

    sent = notifications_repo.list_for_user(2)
    assert [n.type for n in sent] == [NotificationType.SCHEDULE_DELETED]
    assert sent[0].title == "Schedule Removed"
    assert events.names()[-1] == "schedules:published"


def test_leader_schedules_only_for_templates_published_now(publish_service, template_service, schedules_repo):
    _draft(template_service, department="Zone B", publish_status="Published")
    _draft(template_service, days=["Tuesday"])

    publish_service.publish("admin")

    assert schedules_repo.list_by_employee("005") == []
    assert len(schedules_repo.list_by_employee("003")) == 1


def test_department_without_team_leader_publishes(publish_service, template_service, schedules_repo):
    t = _draft(template_service, department="Zone C")
    result = publish_service.publish("admin")

    assert result["published"] == 1
    assert template_service.get_template(t.id).is_published
    assert schedules_repo.rows == {}


def test_publish_steps_run_inside_one_transaction(publish_service, template_service, templates_repo, transaction):
    _draft(template_service)
    depths = []
    original = templates_repo.publish

    def recording_publish(ids, **kwargs):
        depths.append(transaction.depth)
        return original(ids, **kwargs)

    templates_repo.publish = recording_publish
    publish_service.publish("admin")

    assert depths == [1]
    assert transaction.depth == 0


def test_notification_failure_does_not_undo_publish(
    publish_service, template_service, templates_repo, notifications_repo
):
    _draft(template_service)
    publish_service.publish("admin")
    new = _draft(template_service, shift_name="Night", start_time="20:00", end_time="04:00", days=["Monday"])
    notifications_repo.fail = True

    result = publish_service.publish("admin")

    assert result["published"] == 1
    assert templates_repo.get(new.id).is_published


def test_pending_changes(publish_service, template_service):
    published = _draft(template_service, publish_status="Published")
    template_service.delete_template(published.id)
    _draft(template_service, shift_name="Night")

    pending = publish_service.pending_changes()
    assert pending["count"] == 2
    assert len(pending["drafts"]) == 1
    assert pending["pending_deletions"][0]["id"] == published.id


def test_leader_covering_published_template_hears_about_replacement(
    publish_service, template_service, notifications_repo, schedules_repo
):
    _draft(template_service, days=["Monday"], publish_status="Published")
    assert schedules_repo.list_by_employee("003") == []

    _draft(template_service, shift_name="Night", start_time="20:00", end_time="04:00", days=["Monday"])
    result = publish_service.publish("sam")

    assert result["replaced"] == 1
    sent = notifications_repo.list_for_user(2)
    assert [n.title for n in sent] == ["Schedule Published"]
    assert "Changed:" in sent[0].message


def test_managers_receive_publish_summary(publish_service, template_service, notifications_repo):
    _draft(template_service)
    publish_service.publish("sam")

    for user_id in (1, 5):
        sent = notifications_repo.list_for_user(user_id)
        assert [n.title for n in sent] == ["Schedules Published"]
        assert sent[0].type == NotificationType.SCHEDULE_PUBLISHED
        assert "published 1 template(s)" in sent[0].message
    assert notifications_repo.list_for_user(4) == []


def test_no_op_publish_sends_no_summary(publish_service, notifications_repo):
    publish_service.publish("sam")
    assert notifications_repo.rows == {}
