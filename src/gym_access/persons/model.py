from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import PersonStatus, PersonType


@dataclass(frozen=True)
class SubjectRef:
    """Polymorphic reference to a member or a staff person."""

    person_type: PersonType
    person_id: int

    def __str__(self) -> str:
        return f"{self.person_type.value}:{self.person_id}"


@dataclass(frozen=True)
class Person:
    """Thực thể miền (domain): a member or staff person as seen by check-in.

    ``user_id`` links the person to a login account (used for self-service reads).
    """

    person_id: int
    person_type: PersonType
    display_name: str
    branch_id: int
    status: PersonStatus
    user_id: Optional[int] = None

    @property
    def ref(self) -> SubjectRef:
        return SubjectRef(self.person_type, self.person_id)

    @property
    def is_active(self) -> bool:
        return self.status == PersonStatus.ACTIVE

    def summary(self) -> dict:
        return {"id": self.person_id, "name": self.display_name, "type": self.person_type.value}
