from __future__ import annotations

from typing import Optional, Protocol

from .model import Person, SubjectRef


class PersonDirectory(Protocol):
    """Giao diện repository cho Person.

    Members and staff are created/deactivated by the member/staff management
    collaborator; check-in only reads them.
    """

    def lookup_person(self, subject: SubjectRef) -> Optional[Person]:
        raise NotImplementedError
