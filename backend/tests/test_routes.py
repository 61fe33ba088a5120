"""
Inkwell Backend — HTTP and WebSocket Route Tests
==================================================

What:  End-to-end tests through the FastAPI app with an in-memory store.
How:   HTTPX AsyncClient for REST, Starlette TestClient for the chat socket.

What we test:
    ✅ POST /api/messages persists and returns 201 with the camelCase payload
    ✅ POST with a missing or mistyped field → 400 validation_error
    ✅ persistence failure → 500 persistence_error
    ✅ GET /api/messages/{user_id} returns history oldest first + X-Total-Count
    ✅ socket: alice → bob is delivered to bob's socket
    ✅ socket: malformed frames get an error frame, nothing persisted
    ✅ socket: joining an extra channel receives its messages
    ✅ socket: disconnect removes the session from the registry
    ✅ GET /health
"""

import pytest


class TestSendEndpoint:

    @pytest.mark.asyncio
    async def test_send_returns_persisted_message(self, test_client, memory_store):
        response = await test_client.post(
            "/api/messages",
            json={"senderId": "alice", "receiverId": "bob", "content": "hello"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == 1
        assert body["senderId"] == "alice"
        assert body["receiverId"] == "bob"
        assert body["content"] == "hello"
        assert "timestamp" in body
        assert len(memory_store.messages) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body, field",
        [
            ({"senderId": "alice", "content": "hi"}, "receiverId"),
            ({"receiverId": "bob", "content": "hi"}, "senderId"),
            ({"senderId": "alice", "receiverId": "bob"}, "content"),
            ({"senderId": "alice", "receiverId": "bob", "content": 5}, "content"),
            ({"senderId": "", "receiverId": "bob", "content": "hi"}, "senderId"),
        ],
    )
    async def test_malformed_body_is_validation_error(self, test_client, memory_store, body, field):
        response = await test_client.post("/api/messages", json=body)

        assert response.status_code == 400
        payload = response.json()
        assert payload["error"] == "validation_error"
        assert payload["details"]["field"] == field
        assert field in payload["message"]
        assert "request_id" in payload
        assert memory_store.save_calls == 0

    @pytest.mark.asyncio
    async def test_non_object_body_is_validation_error(self, test_client, memory_store):
        response = await test_client.post("/api/messages", json=["alice", "bob", "hi"])

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert memory_store.save_calls == 0

    @pytest.mark.asyncio
    async def test_send_empty_content_is_validation_error(self, test_client, memory_store):
        response = await test_client.post(
            "/api/messages",
            json={"senderId": "alice", "receiverId": "bob", "content": ""},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "content"
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_persistence_failure_returns_500(self, test_client, memory_store):
        memory_store.fail = True

        response = await test_client.post(
            "/api/messages",
            json={"senderId": "alice", "receiverId": "bob", "content": "hello"},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "persistence_error"


class TestHistoryEndpoint:

    @pytest.mark.asyncio
    async def test_history_oldest_first(self, test_client):
        for sender, receiver, content in [
            ("alice", "bob", "one"),
            ("bob", "alice", "two"),
            ("carol", "dave", "other"),
        ]:
            await test_client.post(
                "/api/messages",
                json={"senderId": sender, "receiverId": receiver, "content": content},
            )

        response = await test_client.get("/api/messages/alice")

        assert response.status_code == 200
        body = response.json()
        assert body["userId"] == "alice"
        assert body["totalCount"] == 2
        assert [m["content"] for m in body["messages"]] == ["one", "two"]
        assert response.headers["X-Total-Count"] == "2"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get(
            "/api/messages/alice", headers={"X-Request-ID": "trace-123"}
        )
        assert response.headers["X-Request-ID"] == "trace-123"


class TestChatSocket:

    def test_alice_to_bob_is_delivered(self, ws_client, memory_store):
        with ws_client.websocket_connect("/ws/bob") as bob, \
             ws_client.websocket_connect("/ws/alice") as alice:
            alice.send_json({"event": "send", "receiverId": "bob", "content": "hello"})

            payload = bob.receive_json()

        assert payload["senderId"] == "alice"
        assert payload["receiverId"] == "bob"
        assert payload["content"] == "hello"
        assert payload["id"] == memory_store.messages[0].id
        assert len(memory_store.messages) == 1

    def test_malformed_send_gets_error_frame(self, ws_client, memory_store):
        with ws_client.websocket_connect("/ws/alice") as alice:
            alice.send_json({"event": "send", "content": "no receiver"})
            frame = alice.receive_json()

        assert frame["event"] == "error"
        assert frame["error"] == "validation_error"
        assert frame["field"] == "receiverId"
        assert memory_store.save_calls == 0

    def test_invalid_json_gets_error_frame(self, ws_client):
        with ws_client.websocket_connect("/ws/alice") as alice:
            alice.send_text("{not json")
            frame = alice.receive_json()

        assert frame["error"] == "validation_error"

    def test_unknown_event_gets_error_frame(self, ws_client):
        with ws_client.websocket_connect("/ws/alice") as alice:
            alice.send_json({"event": "typing"})
            frame = alice.receive_json()

        assert frame["field"] == "event"

    def test_persistence_failure_reported_to_sender_only(self, ws_client, memory_store):
        memory_store.fail = True
        with ws_client.websocket_connect("/ws/alice") as alice:
            alice.send_json({"event": "send", "receiverId": "bob", "content": "hello"})
            frame = alice.receive_json()

        assert frame["error"] == "persistence_error"

    def test_joined_channel_receives_messages(self, ws_client):
        with ws_client.websocket_connect("/ws/carol") as carol, \
             ws_client.websocket_connect("/ws/alice") as alice:
            carol.send_json({"event": "join", "channel": "book-club"})
            # An erroring frame after the join proves the join was processed
            carol.send_json({"event": "ping"})
            assert carol.receive_json()["event"] == "error"

            alice.send_json({"event": "send", "receiverId": "book-club", "content": "chapter 3"})
            payload = carol.receive_json()

        assert payload["content"] == "chapter 3"

    def test_disconnect_leaves_registry(self, ws_client, registry):
        with ws_client.websocket_connect("/ws/bob") as bob:
            bob.send_json({"event": "ping"})
            bob.receive_json()
            assert registry.session_count == 1

        assert registry.session_count == 0


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_reports_status(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] in {"healthy", "unhealthy"}
        assert body["connected_sessions"] == 0
        assert "version" in body
