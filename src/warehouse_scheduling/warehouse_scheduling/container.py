from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .common.datetime_utils import Clock
from .database.connection import DBConfig, DatabaseConnection
from .employee_schedules.mysql_employee_schedule_repository import MySQLEmployeeScheduleRepository
from .employee_schedules.service import EmployeeScheduleService
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.service import NotificationService
from .publishing.service import PublishService
from .realtime.events import EventBroadcaster
from .templates.mysql_template_repository import MySQLTemplateRepository
from .templates.service import TemplateService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    clock: Clock
    events: EventBroadcaster

    users_repo: MySQLUserRepository
    templates_repo: MySQLTemplateRepository
    employee_schedules_repo: MySQLEmployeeScheduleRepository
    notifications_repo: MySQLNotificationRepository

    auth_service: AuthService
    notification_service: NotificationService
    template_service: TemplateService
    employee_schedule_service: EmployeeScheduleService
    publish_service: PublishService


def build_container(*, db_config: dict, timezone: Optional[str] = None) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)
    clock = Clock.from_name(timezone)
    events = EventBroadcaster()

    users_repo = MySQLUserRepository(conn)
    templates_repo = MySQLTemplateRepository(conn)
    employee_schedules_repo = MySQLEmployeeScheduleRepository(conn)
    notifications_repo = MySQLNotificationRepository(conn)

    auth_service = AuthService(users_repo)
    notification_service = NotificationService(notifications_repo, users_repo)
    template_service = TemplateService(
        templates_repo,
        users_repo,
        notification_service,
        events,
        clock=clock,
        transaction=conn.transaction,
    )
    employee_schedule_service = EmployeeScheduleService(
        employee_schedules_repo,
        templates_repo,
        template_service,
        clock=clock,
        transaction=conn.transaction,
    )
    publish_service = PublishService(
        templates_repo,
        employee_schedule_service,
        users_repo,
        notification_service,
        events,
        clock=clock,
        transaction=conn.transaction,
    )

    return Container(
        conn=conn,
        clock=clock,
        events=events,
        users_repo=users_repo,
        templates_repo=templates_repo,
        employee_schedules_repo=employee_schedules_repo,
        notifications_repo=notifications_repo,
        auth_service=auth_service,
        notification_service=notification_service,
        template_service=template_service,
        employee_schedule_service=employee_schedule_service,
        publish_service=publish_service,
    )
