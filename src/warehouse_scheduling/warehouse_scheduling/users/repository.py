from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for users and their linked employees.

    Note: the service layer depends on this interface, not on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def get_team_leader_for_department(self, department: str) -> Optional[User]:
        """The team leader whose linked employee belongs to `department`."""

        raise NotImplementedError

    def list_team_leaders(self, departments: Iterable[str]) -> Sequence[User]:
        raise NotImplementedError

    def list_by_roles(self, roles: Iterable[Role]) -> Sequence[User]:
        raise NotImplementedError
