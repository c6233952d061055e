from dataclasses import dataclass, field
from typing import List, Optional

from constants import DEFAULT_LANGUAGE, PLACEHOLDER_CODE


@dataclass
class Member:
    connection_id: str
    display_name: str

    def to_payload(self) -> dict:
        return {"id": self.connection_id, "username": self.display_name}


@dataclass
class Room:
    """Live state of one collaborative session.

    ``room_id``, ``password`` and ``host_id`` are fixed at creation. ``code``,
    ``language`` and ``members`` are mutated in place for the room's lifetime.
    """

    room_id: str
    password: Optional[str]
    host_id: str
    code: str = PLACEHOLDER_CODE
    language: str = DEFAULT_LANGUAGE
    members: List[Member] = field(default_factory=list)

    def check_password(self, password_attempt: Optional[str]) -> bool:
        return self.password == password_attempt

    def is_host(self, connection_id: str) -> bool:
        return self.host_id == connection_id

    def has_member(self, connection_id: str) -> bool:
        return any(m.connection_id == connection_id for m in self.members)

    def add_member(self, connection_id: str, display_name: str) -> bool:
        """Append a member; returns False if the connection is already listed."""
        if self.has_member(connection_id):
            return False
        self.members.append(Member(connection_id, display_name))
        return True

    def remove_member(self, connection_id: str) -> bool:
        for index, member in enumerate(self.members):
            if member.connection_id == connection_id:
                del self.members[index]
                return True
        return False

    @property
    def host_name(self) -> str:
        for member in self.members:
            if member.connection_id == self.host_id:
                return member.display_name
        return "Unknown"

    def member_list(self) -> List[dict]:
        return [m.to_payload() for m in self.members]

    def __repr__(self):
        return f"<Room(room_id={self.room_id}, language={self.language}, members={len(self.members)})>"
