"""Session coordinator: room lifecycle, membership and broadcast rules.

Handlers run to completion one at a time on the event loop. The only
awaits that hand control to unrelated events are the execution relay
calls in ``run_code`` and ``submit_code``; everything else only awaits
transport sends.
"""
from typing import Any, Optional

from constants import SUPPORTED_LANGUAGES
from errors import NotHost, ProviderError, RoomExists, RoomNotFound, SessionError, UnsupportedLanguage, WrongPassword
from logging_config import get_logger
from models import Room
from registry import ConnectionRegistry
from relay import ExecutionRelay
from schemas import ChatMessage, CursorUpdate, JoinSuccess, SubmitResult
from store import RoomStore
from transport import BroadcastTransport

logger = get_logger(__name__)

RUNNING_PLACEHOLDER = "Running code..."


class SessionCoordinator:
    def __init__(self, store: RoomStore, registry: ConnectionRegistry,
                 transport: BroadcastTransport, relay: ExecutionRelay):
        self.store = store
        self.registry = registry
        self.transport = transport
        self.relay = relay

    # ---------------- HELPERS ----------------

    def directory(self) -> list:
        return [s.model_dump() for s in self.store.list_rooms()]

    async def broadcast_directory(self):
        await self.transport.to_all("room-list", self.directory())

    async def _reject(self, sid: str, error: SessionError):
        logger.warning(f"Rejected request from {sid}: {error.message}")
        await self.transport.send(sid, "error", error.message)

    def _bound_room(self, sid: str, room_id: str) -> Optional[Room]:
        """Room the connection is bound to, or None when the event should be ignored."""
        if not self.registry.is_bound_to(sid, room_id):
            logger.debug(f"Ignoring event from {sid}: not bound to room {room_id}")
            return None
        room = self.store.find(room_id)
        if room is None:
            logger.debug(f"Ignoring event from {sid}: room {room_id} no longer exists")
        return room

    async def _enter(self, sid: str, room: Room, display_name: str):
        await self.transport.enter_room(sid, room.room_id)
        room.add_member(sid, display_name)
        self.registry.bind(sid, room.room_id, display_name)
        logger.info(f"{display_name} ({sid}) joined room {room.room_id} ({len(room.members)} members)")

        await self._send_snapshot(sid, room)
        await self.transport.to_room(room.room_id, "user-list-update", room.member_list())
        await self.broadcast_directory()

    async def _send_snapshot(self, sid: str, room: Room):
        joined = JoinSuccess(roomId=room.room_id, isHost=room.is_host(sid))
        await self.transport.send(sid, "join-success", joined.model_dump())
        await self.transport.send(sid, "code-update", room.code)
        await self.transport.send(sid, "language-update", room.language)

    async def _depart(self, sid: str):
        """Drop the connection from whatever room it is bound to, if any."""
        conn = self.registry.get(sid)
        room_id = conn.room_id if conn else None
        if room_id is None:
            return
        self.registry.unbind(sid)
        await self.transport.leave_room(sid, room_id)

        room = self.store.find(room_id)
        if room is None or not room.remove_member(sid):
            return
        logger.info(f"{sid} left room {room_id} ({len(room.members)} members remain)")
        await self.transport.to_room(room_id, "user-list-update", room.member_list())
        await self.broadcast_directory()

    # ---------------- CONNECTION LIFECYCLE ----------------

    async def connect(self, sid: str):
        self.registry.register(sid)
        await self.transport.send(sid, "room-list", self.directory())

    async def disconnect(self, sid: str):
        await self._depart(sid)
        self.registry.discard(sid)

    # ---------------- ROOM LIFECYCLE ----------------

    async def create_room(self, sid: str, room_id: str, display_name: str, password: Optional[str]):
        if room_id in self.store:
            await self._reject(sid, RoomExists())
            return

        await self._depart(sid)
        room = self.store.create(room_id, password, host_id=sid)
        await self._enter(sid, room, display_name)

    async def join_room(self, sid: str, room_id: str, display_name: str, password: Optional[str]):
        try:
            room = self.store.get(room_id)
            if not room.check_password(password):
                raise WrongPassword()
        except (RoomNotFound, WrongPassword) as e:
            await self._reject(sid, e)
            return

        if self.registry.is_bound_to(sid, room_id) and room.has_member(sid):
            # Re-join of the current room: re-hydrate the requester only.
            logger.debug(f"{sid} re-joined room {room_id}; resending snapshot")
            await self._send_snapshot(sid, room)
            await self.transport.send(sid, "user-list-update", room.member_list())
            return

        await self._depart(sid)
        await self._enter(sid, room, display_name)

    async def leave_room(self, sid: str, room_id: str):
        if self._bound_room(sid, room_id) is None:
            return
        await self._depart(sid)

    async def end_room(self, sid: str, room_id: str):
        room = self._bound_room(sid, room_id)
        if room is None:
            return
        if not room.is_host(sid):
            await self._reject(sid, NotHost())
            return

        await self.transport.to_room(room_id, "room-ended", room_id)
        for member in room.members:
            self.registry.unbind(member.connection_id)
        await self.transport.close_room(room_id)
        self.store.delete(room_id)
        logger.info(f"Room {room_id} ended by host {sid}")
        await self.broadcast_directory()

    async def sync_users(self, sid: str, room_id: str):
        room = self._bound_room(sid, room_id)
        if room is None:
            return
        await self.transport.send(sid, "user-list-update", room.member_list())

    # ---------------- SHARED STATE ----------------

    async def change_code(self, sid: str, room_id: str, code: str):
        room = self._bound_room(sid, room_id)
        if room is None:
            return
        room.code = code
        await self.transport.to_room(room_id, "code-update", code, skip_sid=sid)

    async def change_language(self, sid: str, room_id: str, language: str):
        room = self._bound_room(sid, room_id)
        if room is None:
            return
        if language not in SUPPORTED_LANGUAGES:
            await self._reject(sid, UnsupportedLanguage())
            return
        room.language = language
        await self.transport.to_room(room_id, "language-update", language)
        await self.broadcast_directory()

    # ---------------- STATELESS RELAYS ----------------

    async def typing(self, sid: str, room_id: str, display_name: str):
        if self._bound_room(sid, room_id) is None:
            return
        await self.transport.to_room(room_id, "user-typing", display_name, skip_sid=sid)

    async def send_chat(self, sid: str, room_id: str, display_name: str, message: str):
        if self._bound_room(sid, room_id) is None:
            return
        chat = ChatMessage(message=message, username=display_name)
        await self.transport.to_room(room_id, "receive-chat-message", chat.model_dump())

    async def move_cursor(self, sid: str, room_id: str, display_name: str, position: Any):
        if self._bound_room(sid, room_id) is None:
            return
        update = CursorUpdate(socketId=sid, username=display_name, position=position)
        await self.transport.to_room(room_id, "cursor-update", update.model_dump(), skip_sid=sid)

    # ---------------- EXECUTION ----------------

    async def run_code(self, sid: str, room_id: str, language: str, code: str, stdin: Optional[str]):
        room = self._bound_room(sid, room_id)
        if room is None:
            return
        try:
            self.relay.resolve(language)
        except UnsupportedLanguage as e:
            await self.transport.to_room(room_id, "code-output", e.message)
            return

        await self.transport.to_room(room_id, "code-output", RUNNING_PLACEHOLDER)
        try:
            result = await self.relay.execute(language, code, stdin)
            text = result.describe()
        except ProviderError as e:
            text = ProviderError.message
            logger.error(f"Run in room {room_id} failed: {e.message}")

        # The room may have been ended (or replaced) while the provider worked.
        if self.store.find(room_id) is not room:
            logger.debug(f"Dropping run output for vanished room {room_id}")
            return
        await self.transport.to_room(room_id, "code-output", text)

    async def submit_code(self, sid: str, room_id: str, language: str, code: str, stdin: Optional[str]):
        if self._bound_room(sid, room_id) is None:
            return
        try:
            self.relay.resolve(language)
        except UnsupportedLanguage as e:
            result = SubmitResult(success=False, output=e.message)
            await self.transport.send(sid, "submit-result", result.model_dump())
            return

        try:
            execution = await self.relay.execute(language, code, stdin)
            result = SubmitResult(
                success=True,
                output=execution.output,
                memory=execution.memory,
                cpuTime=execution.cpu_time,
            )
        except ProviderError as e:
            logger.error(f"Submission from {sid} in room {room_id} failed: {e.message}")
            result = SubmitResult(success=False, output="Execution Error")

        await self.transport.send(sid, "submit-result", result.model_dump())
