"""Bookkeeping for live transport connections.

A connection is either ``UNBOUND`` or ``Bound(room_id)``. The coordinator
consults this state before acting on any room-scoped event and ignores
events that do not match it.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from logging_config import get_logger

logger = get_logger(__name__)


class Unbound:
    def __repr__(self):
        return "Unbound"


UNBOUND = Unbound()


@dataclass(frozen=True)
class Bound:
    room_id: str


ConnectionState = Union[Unbound, Bound]


@dataclass
class Connection:
    sid: str
    display_name: Optional[str] = None
    state: ConnectionState = field(default=UNBOUND)

    @property
    def room_id(self) -> Optional[str]:
        return self.state.room_id if isinstance(self.state, Bound) else None

    def is_bound_to(self, room_id: str) -> bool:
        return isinstance(self.state, Bound) and self.state.room_id == room_id


class ConnectionRegistry:
    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def register(self, sid: str) -> Connection:
        conn = Connection(sid)
        self._connections[sid] = conn
        logger.debug(f"Registered connection {sid} (live: {len(self._connections)})")
        return conn

    def discard(self, sid: str) -> Optional[Connection]:
        conn = self._connections.pop(sid, None)
        logger.debug(f"Discarded connection {sid} (live: {len(self._connections)})")
        return conn

    def get(self, sid: str) -> Optional[Connection]:
        return self._connections.get(sid)

    def bind(self, sid: str, room_id: str, display_name: str) -> Connection:
        # Connections normally register on connect; tolerate a missed callback.
        conn = self._connections.get(sid) or self.register(sid)
        conn.display_name = display_name
        conn.state = Bound(room_id)
        return conn

    def unbind(self, sid: str) -> None:
        conn = self._connections.get(sid)
        if conn is not None:
            conn.state = UNBOUND

    def is_bound_to(self, sid: str, room_id: str) -> bool:
        conn = self._connections.get(sid)
        return conn is not None and conn.is_bound_to(room_id)

    def __contains__(self, sid: str) -> bool:
        return sid in self._connections

    def __len__(self) -> int:
        return len(self._connections)
