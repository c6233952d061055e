from contextlib import asynccontextmanager
from functools import wraps

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from constants import CORS_ORIGINS, EXECUTION_CREDENTIALS, EXECUTION_TIMEOUT, EXECUTION_URL, LOG_FILE, LOG_LEVEL
from coordinator import SessionCoordinator
from logging_config import get_logger, setup_logging
from registry import ConnectionRegistry
from relay import CredentialPool, ExecutionRelay, parse_credentials
from schemas import (
    ChatMessageRequest,
    CodeChangeRequest,
    CreateRoomRequest,
    CursorMoveRequest,
    JoinRoomRequest,
    LanguageChangeRequest,
    RoomDetails,
    RoomRequest,
    RunCodeRequest,
    SubmitCodeRequest,
    TypingRequest,
)
from store import RoomStore, summarize
from transport import SocketIOTransport

setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def build_coordinator(sio: socketio.AsyncServer) -> SessionCoordinator:
    pool = CredentialPool(parse_credentials(EXECUTION_CREDENTIALS))
    if not len(pool):
        logger.warning("No execution credentials configured; run/submit will fail")
    relay = ExecutionRelay(pool, EXECUTION_URL, timeout=EXECUTION_TIMEOUT)
    return SessionCoordinator(RoomStore(), ConnectionRegistry(), SocketIOTransport(sio), relay)


def parse_payload(model, data):
    """Validate an inbound event payload; malformed payloads yield None."""
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as e:
        logger.debug(f"Dropping malformed {model.__name__} payload: {e.error_count()} error(s)")
        return None


def isolated(handler):
    """Keep one handler's failure from reaching the server loop."""
    @wraps(handler)
    async def wrapper(sid, *args):
        try:
            return await handler(sid, *args)
        except Exception:
            logger.exception(f"Unhandled error in {handler.__name__} for {sid}")
    return wrapper


def register_handlers(sio: socketio.AsyncServer, coordinator: SessionCoordinator) -> None:

    def on(event, model):
        def decorator(func):
            @wraps(func)
            async def handler(sid, data=None):
                payload = parse_payload(model, data)
                if payload is None:
                    return
                await func(sid, payload)
            sio.on(event, isolated(handler))
            return func
        return decorator

    @sio.event
    @isolated
    async def connect(sid, environ, auth=None):
        logger.info(f"User connected: {sid}")
        await coordinator.connect(sid)

    @sio.event
    @isolated
    async def disconnect(sid, reason=None):
        logger.info(f"Disconnected: {sid} ({reason})")
        await coordinator.disconnect(sid)

    @on("create-room", CreateRoomRequest)
    async def create_room(sid, p):
        await coordinator.create_room(sid, p.roomId, p.username, p.password)

    @on("join-room", JoinRoomRequest)
    async def join_room(sid, p):
        await coordinator.join_room(sid, p.roomId, p.username, p.password)

    @on("code-change", CodeChangeRequest)
    async def code_change(sid, p):
        await coordinator.change_code(sid, p.roomId, p.code)

    @on("language-change", LanguageChangeRequest)
    async def language_change(sid, p):
        await coordinator.change_language(sid, p.roomId, p.language)

    @on("typing", TypingRequest)
    async def typing(sid, p):
        await coordinator.typing(sid, p.roomId, p.username)

    @on("send-chat-message", ChatMessageRequest)
    async def send_chat_message(sid, p):
        await coordinator.send_chat(sid, p.roomId, p.username, p.message)

    @on("cursor-move", CursorMoveRequest)
    async def cursor_move(sid, p):
        await coordinator.move_cursor(sid, p.roomId, p.username, p.position)

    @on("run-code", RunCodeRequest)
    async def run_code(sid, p):
        await coordinator.run_code(sid, p.roomId, p.language, p.code, p.stdin)

    @on("submit-code", SubmitCodeRequest)
    async def submit_code(sid, p):
        await coordinator.submit_code(sid, p.roomId, p.language, p.code, p.stdin)

    @on("leave-room", RoomRequest)
    async def leave_room(sid, p):
        await coordinator.leave_room(sid, p.roomId)

    @on("end-room", RoomRequest)
    async def end_room(sid, p):
        await coordinator.end_room(sid, p.roomId)

    @on("sync-users", RoomRequest)
    async def sync_users(sid, p):
        await coordinator.sync_users(sid, p.roomId)


# ---- Socket.IO Server ----
sio = socketio.AsyncServer(
    cors_allowed_origins="*" if "*" in CORS_ORIGINS else CORS_ORIGINS,
    async_mode="asgi"
)

coordinator = build_coordinator(sio)
register_handlers(sio, coordinator)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await coordinator.relay.aclose()


app = FastAPI(title="Pair Session Server", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

sio_app = socketio.ASGIApp(sio, other_asgi_app=app)


# ---------------- REST API ENDPOINTS ----------------

@app.get("/api/rooms")
async def list_rooms():
    """Directory snapshot of all live rooms"""
    return coordinator.directory()


@app.get("/api/room/{room_id}")
async def get_room(room_id: str):
    """Summary and member list of one room"""
    room = coordinator.store.find(room_id)
    if room:
        return RoomDetails(**summarize(room).model_dump(), members=room.member_list()).model_dump()
    return {"error": "Room not found"}


@app.get("/health/live")
def live() -> dict:
    return {"status": "ok"}
