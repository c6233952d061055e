import asyncio

from coordinator import RUNNING_PLACEHOLDER


async def test_run_broadcasts_placeholder_then_output(shared_room, provider):
    h = shared_room
    await h.coordinator.run_code("bob", "R1", "python", "print('hello')", None)

    expected = "hello\n\n\n[Execution Info]\nStatus: 200\nMemory: 7680kb\nCPU: 0.01s"
    for sid in ("alice", "bob"):
        assert h.transport.received(sid, "code-output") == [RUNNING_PLACEHOLDER, expected]

    [body] = provider.requests
    assert body["language"] == "python3"
    assert body["versionIndex"] == "4"
    assert body["script"] == "print('hello')"
    assert body["stdin"] == ""


async def test_run_unsupported_language_never_reaches_provider(shared_room, provider):
    h = shared_room
    await h.coordinator.run_code("alice", "R1", "rust", "fn main() {}", "")

    assert h.transport.received("alice", "code-output") == ["Error: Language not supported."]
    assert h.transport.received("bob", "code-output") == ["Error: Language not supported."]
    assert provider.requests == []


async def test_credentials_rotate_round_robin(shared_room, provider):
    h = shared_room
    await h.coordinator.run_code("alice", "R1", "cpp", "int main(){}", "1 2")
    await h.coordinator.submit_code("bob", "R1", "java", "class A {}", "3\n1\n2\n3")
    await h.coordinator.run_code("bob", "R1", "c", "int main(){}", None)

    assert [r["clientId"] for r in provider.requests] == ["client-aaaa", "client-bbbb", "client-aaaa"]
    assert provider.requests[0]["stdin"] == "1 2"


async def test_run_provider_failure(shared_room, provider):
    h = shared_room
    provider.status_code = 502

    await h.coordinator.run_code("alice", "R1", "python", "x", None)

    assert h.transport.received("bob", "code-output") == [RUNNING_PLACEHOLDER, "Error executing code."]


async def test_run_output_dropped_when_room_ends_mid_flight(shared_room, provider):
    h = shared_room
    gate = provider.hold()

    run = asyncio.create_task(h.coordinator.run_code("bob", "R1", "python", "x", None))
    while not provider.requests:
        await asyncio.sleep(0)
    await h.coordinator.end_room("alice", "R1")
    gate.set()
    await run

    assert h.transport.received("alice", "code-output") == [RUNNING_PLACEHOLDER]
    assert h.transport.received("bob", "code-output") == [RUNNING_PLACEHOLDER]


async def test_run_output_reaches_remaining_members(shared_room, provider):
    h = shared_room
    gate = provider.hold()

    run = asyncio.create_task(h.coordinator.run_code("alice", "R1", "python", "x", None))
    while not provider.requests:
        await asyncio.sleep(0)
    await h.coordinator.leave_room("bob", "R1")
    gate.set()
    await run

    assert len(h.transport.received("alice", "code-output")) == 2
    assert h.transport.received("bob", "code-output") == [RUNNING_PLACEHOLDER]


async def test_submit_result_goes_to_requester_only(shared_room, provider):
    h = shared_room
    provider.payload = {"output": "1\n2\n", "statusCode": 200, "memory": 1024, "cpuTime": 0.5}

    await h.coordinator.submit_code("bob", "R1", "python", "solve()", "2\n1\n2")

    assert h.transport.received("bob", "submit-result") == [
        {"success": True, "output": "1\n2\n", "memory": "1024", "cpuTime": "0.5"}
    ]
    assert h.transport.received("bob", "code-output") == []
    assert h.transport.events("alice") == []
    assert provider.requests[0]["stdin"] == "2\n1\n2"


async def test_submit_unsupported_language(shared_room, provider):
    h = shared_room
    await h.coordinator.submit_code("bob", "R1", "rust", "fn main() {}", "")

    assert h.transport.received("bob", "submit-result") == [
        {"success": False, "output": "Error: Language not supported.", "memory": None, "cpuTime": None}
    ]
    assert h.transport.events("alice") == []
    assert provider.requests == []


async def test_submit_provider_failure(shared_room, provider):
    h = shared_room
    provider.status_code = 500

    await h.coordinator.submit_code("bob", "R1", "python", "x", "1\n1")

    [result] = h.transport.received("bob", "submit-result")
    assert result["success"] is False
    assert result["output"] == "Execution Error"


async def test_execution_requires_membership(shared_room, provider):
    h = shared_room
    await h.connect("carol")
    h.transport.clear()

    await h.coordinator.run_code("carol", "R1", "python", "x", None)
    await h.coordinator.submit_code("carol", "R1", "python", "x", None)

    assert h.transport.sent == []
    assert provider.requests == []


async def test_submit_malformed_provider_reply(shared_room, provider):
    h = shared_room
    provider.payload = {"output": 42, "statusCode": 200}

    await h.coordinator.submit_code("bob", "R1", "python", "x", "1\n1")

    assert h.transport.received("bob", "submit-result") == [
        {"success": False, "output": "Execution Error", "memory": None, "cpuTime": None}
    ]
