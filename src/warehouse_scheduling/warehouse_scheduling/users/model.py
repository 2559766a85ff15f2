from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Login account. `department` comes from the linked employee."""

    id: int
    username: str
    password_hash: str
    role: Role
    name: Optional[str] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None
    is_active: bool = True
