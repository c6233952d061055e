import asyncio
import json
from collections import defaultdict

import httpx
import pytest

from coordinator import SessionCoordinator
from registry import ConnectionRegistry
from relay import Credential, CredentialPool, ExecutionRelay
from store import RoomStore
from transport import BroadcastTransport

EXECUTION_URL = "https://exec.test/v1/execute"


class RecordingTransport(BroadcastTransport):
    """In-memory transport that records every delivery per recipient."""

    def __init__(self):
        self.live = set()
        self.rooms = defaultdict(set)
        self.sent = []

    def _deliver(self, sid, event, data):
        if sid in self.live:
            self.sent.append((sid, event, data))

    async def send(self, sid, event, data=None):
        self._deliver(sid, event, data)

    async def to_room(self, room_id, event, data=None, skip_sid=None):
        for sid in sorted(self.rooms.get(room_id, ())):
            if sid != skip_sid:
                self._deliver(sid, event, data)

    async def to_all(self, event, data=None):
        for sid in sorted(self.live):
            self._deliver(sid, event, data)

    async def enter_room(self, sid, room_id):
        self.rooms[room_id].add(sid)

    async def leave_room(self, sid, room_id):
        self.rooms[room_id].discard(sid)

    async def close_room(self, room_id):
        self.rooms.pop(room_id, None)

    def received(self, sid, event):
        return [data for to, ev, data in self.sent if to == sid and ev == event]

    def events(self, sid):
        return [ev for to, ev, _ in self.sent if to == sid]

    def clear(self):
        self.sent.clear()


class FakeProvider:
    """Stands in for the execution provider behind httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.payload = {"output": "hello\n", "statusCode": 200, "memory": "7680", "cpuTime": "0.01"}
        self.gate = None

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.gate is not None:
            await self.gate.wait()
        return httpx.Response(self.status_code, json=self.payload)

    def hold(self):
        self.gate = asyncio.Event()
        return self.gate


class Harness:
    def __init__(self, coordinator, transport):
        self.coordinator = coordinator
        self.transport = transport

    @property
    def store(self):
        return self.coordinator.store

    async def connect(self, *sids):
        for sid in sids:
            self.transport.live.add(sid)
            await self.coordinator.connect(sid)

    async def disconnect(self, sid):
        await self.coordinator.disconnect(sid)
        self.transport.live.discard(sid)
        for members in self.transport.rooms.values():
            members.discard(sid)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def relay(provider):
    pool = CredentialPool([Credential("client-aaaa", "secret-a"), Credential("client-bbbb", "secret-b")])
    client = httpx.AsyncClient(transport=httpx.MockTransport(provider.handle))
    return ExecutionRelay(pool, EXECUTION_URL, client=client)


@pytest.fixture
def coordinator(transport, relay):
    return SessionCoordinator(RoomStore(), ConnectionRegistry(), transport, relay)


@pytest.fixture
def harness(coordinator, transport):
    return Harness(coordinator, transport)


@pytest.fixture
async def shared_room(harness):
    """Room "R1" (password "p") hosted by alice with bob joined."""
    await harness.connect("alice", "bob")
    await harness.coordinator.create_room("alice", "R1", "Alice", "p")
    await harness.coordinator.join_room("bob", "R1", "Bob", "p")
    harness.transport.clear()
    return harness
