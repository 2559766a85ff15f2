from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from ..common.validators import require_non_empty
from ..core.enums import NotificationType, Role
from ..core.exceptions import NotFoundError
from ..users.model import User
from ..users.repository import UserRepository
from .model import Notification
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """Role/department fan-out of notification rows plus per-user read state."""

    def __init__(self, notifications: NotificationRepository, users: UserRepository):
        self._notifications = notifications
        self._users = users

    def create_notification(
        self,
        *,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType = NotificationType.GENERAL,
        employee_id: Optional[str] = None,
        related_id: Optional[int] = None,
        created_by: Optional[str] = None,
    ) -> Notification:
        title = require_non_empty(title, "title")
        message = require_non_empty(message, "message")
        new_id = self._notifications.create(
            user_id=int(user_id),
            type=NotificationType(type),
            title=title,
            message=message,
            employee_id=employee_id,
            related_id=related_id,
            created_by=created_by,
        )
        created = self._notifications.get(new_id)
        if created is None:
            raise NotFoundError("Notification not found")
        return created

    def _notify_users(
        self,
        users: Iterable[User],
        *,
        title: str,
        message: str,
        type: NotificationType,
        related_id: Optional[int],
        created_by: Optional[str],
    ) -> list[Notification]:
        out: list[Notification] = []
        seen: set[int] = set()
        for user in users:
            if user.id in seen:
                continue
            seen.add(user.id)
            out.append(
                self.create_notification(
                    user_id=user.id,
                    employee_id=user.employee_id,
                    title=title,
                    message=message,
                    type=type,
                    related_id=related_id,
                    created_by=created_by,
                )
            )
        return out

    def notify_team_leaders(
        self,
        departments: Iterable[str],
        *,
        title: str,
        message: str,
        type: NotificationType = NotificationType.SCHEDULE_UPDATE,
        related_id: Optional[int] = None,
        created_by: Optional[str] = None,
    ) -> list[Notification]:
        leaders = self._users.list_team_leaders(departments)
        if not leaders:
            logger.info("No team leaders to notify for departments %s", sorted(set(departments)))
            return []
        created = self._notify_users(
            leaders, title=title, message=message, type=type, related_id=related_id, created_by=created_by
        )
        logger.info("Notified %d team leader(s): %s", len(created), title)
        return created

    def notify_roles(
        self,
        roles: Iterable[Role],
        *,
        title: str,
        message: str,
        type: NotificationType = NotificationType.GENERAL,
        related_id: Optional[int] = None,
        created_by: Optional[str] = None,
    ) -> list[Notification]:
        users = self._users.list_by_roles(roles)
        return self._notify_users(
            users, title=title, message=message, type=type, related_id=related_id, created_by=created_by
        )

    def list_for_user(self, user_id: int) -> Sequence[Notification]:
        return self._notifications.list_for_user(int(user_id))

    def unread_count(self, user_id: int) -> int:
        return self._notifications.count_unread(int(user_id))

    def mark_as_read(self, notification_id: int) -> Notification:
        if not self._notifications.mark_read(int(notification_id)):
            raise NotFoundError("Notification not found")
        updated = self._notifications.get(int(notification_id))
        if updated is None:
            raise NotFoundError("Notification not found")
        return updated

    def mark_all_as_read(self, user_id: int) -> int:
        return self._notifications.mark_all_read(int(user_id))

    def delete(self, notification_id: int) -> None:
        if not self._notifications.delete(int(notification_id)):
            raise NotFoundError("Notification not found")

    def clear_all(self, user_id: int) -> int:
        return self._notifications.delete_for_user(int(user_id))
