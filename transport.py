"""Broadcast transport used by the coordinator.

Delivery is at-most-once and best-effort: a room multicast reaches the
room's membership as it stands when the call is made, and nothing waits
for acknowledgement.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional

import socketio


class BroadcastTransport(ABC):
    @abstractmethod
    async def send(self, sid: str, event: str, data: Any = None) -> None:
        """Point-to-point send to one connection."""

    @abstractmethod
    async def to_room(self, room_id: str, event: str, data: Any = None,
                      skip_sid: Optional[str] = None) -> None:
        """Multicast to every connection in ``room_id``, optionally skipping one."""

    @abstractmethod
    async def to_all(self, event: str, data: Any = None) -> None:
        """Multicast to every live connection."""

    @abstractmethod
    async def enter_room(self, sid: str, room_id: str) -> None:
        ...

    @abstractmethod
    async def leave_room(self, sid: str, room_id: str) -> None:
        ...

    @abstractmethod
    async def close_room(self, room_id: str) -> None:
        ...


class SocketIOTransport(BroadcastTransport):
    def __init__(self, sio: socketio.AsyncServer):
        self.sio = sio

    async def send(self, sid, event, data=None):
        await self.sio.emit(event, data, to=sid)

    async def to_room(self, room_id, event, data=None, skip_sid=None):
        await self.sio.emit(event, data, room=room_id, skip_sid=skip_sid)

    async def to_all(self, event, data=None):
        await self.sio.emit(event, data)

    async def enter_room(self, sid, room_id):
        await self.sio.enter_room(sid, room_id)

    async def leave_room(self, sid, room_id):
        await self.sio.leave_room(sid, room_id)

    async def close_room(self, room_id):
        await self.sio.close_room(room_id)
