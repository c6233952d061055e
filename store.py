from typing import Dict, List, Optional

from constants import DEFAULT_LANGUAGE
from errors import RoomExists, RoomNotFound
from logging_config import get_logger
from models import Room
from schemas import RoomSummary

logger = get_logger(__name__)


class RoomStore:
    """Authoritative map of room id -> Room for one coordinator instance.

    Every method is synchronous; handlers run one at a time on the event
    loop, so a mutation is never observed half-applied.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}

    def create(self, room_id: str, password: Optional[str], host_id: str,
               language: str = DEFAULT_LANGUAGE) -> Room:
        if room_id in self._rooms:
            raise RoomExists()
        room = Room(room_id=room_id, password=password, host_id=host_id, language=language)
        self._rooms[room_id] = room
        logger.info(f"Room {room_id} created by {host_id}")
        return room

    def get(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound()
        return room

    def find(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def delete(self, room_id: str) -> Optional[Room]:
        room = self._rooms.pop(room_id, None)
        if room is not None:
            logger.info(f"Room {room_id} deleted")
        return room

    def list_rooms(self) -> List[RoomSummary]:
        return [summarize(room) for room in self._rooms.values()]

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)


def summarize(room: Room) -> RoomSummary:
    return RoomSummary(
        roomId=room.room_id,
        users=len(room.members),
        language=room.language,
        host=room.host_name,
    )
