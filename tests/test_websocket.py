import pytest

from travelviet.api.errors import NotFoundError, RateLimitExceeded, StreamCancelled
from travelviet.api.services import ChatService
from travelviet.routes import NAMESPACE


class FakeChatClient:
    """Replays canned deltas instead of calling the gateway."""

    def __init__(self, deltas=("Xin ", "chào"), error=None):
        self.deltas = deltas
        self.error = error
        self.is_streaming = False
        self.cancelled = False
        self.calls = []

    def send_message(self, session_id, messages, trip_context=None, on_delta=None, cancel_token=None):
        self.calls.append((session_id, list(messages), trip_context))
        text = ""
        for delta in self.deltas:
            text += delta
            on_delta(text)
        if self.error is not None:
            raise self.error
        return text

    def cancel(self):
        self.cancelled = True


@pytest.fixture
def fake_client(app):
    client = FakeChatClient()
    app.config["CHAT_CLIENT_FACTORY"] = lambda: client
    return client


@pytest.fixture
def socket_client(app, fake_client, monkeypatch):
    socketio = app.extensions["socketio"]
    # Run the streaming task inline so events are available right away.
    monkeypatch.setattr(socketio, "start_background_task", lambda fn, *args, **kwargs: fn(*args, **kwargs))
    client = socketio.test_client(app, namespace=NAMESPACE)
    client.get_received(NAMESPACE)
    yield client
    if client.is_connected(NAMESPACE):
        client.disconnect(namespace=NAMESPACE)


@pytest.fixture
def session_id(app):
    with app.app_context():
        return ChatService.create_session("user-1").id


def _events(client):
    return [(packet["name"], packet["args"][0]) for packet in client.get_received(NAMESPACE)]


def test_connect_acknowledged(app):
    client = app.extensions["socketio"].test_client(app, namespace=NAMESPACE)
    names = [packet["name"] for packet in client.get_received(NAMESPACE)]
    assert names == ["connected"]


def test_send_message_streams_reply(app, socket_client, fake_client, session_id):
    socket_client.emit(
        "send_message",
        {
            "session_id": session_id,
            "content": "Gợi ý quán cà phê Đà Lạt",
            "trip_context": {"tripId": "t1", "destination": ["Lâm Đồng"], "budget": 3000000},
        },
        namespace=NAMESPACE,
    )

    assert _events(socket_client) == [
        ("chat_delta", {"session_id": session_id, "text": "Xin "}),
        ("chat_delta", {"session_id": session_id, "text": "Xin chào"}),
        ("chat_complete", {"session_id": session_id, "text": "Xin chào"}),
    ]

    _, history, context = fake_client.calls[0]
    assert [m.content for m in history] == ["Gợi ý quán cà phê Đà Lạt"]
    assert context.destinations == ["Lâm Đồng"]
    assert context.budget_vnd == 3000000

    with app.app_context():
        stored = ChatService.list_messages(session_id)
        assert [(m.role, m.content) for m in stored] == [("user", "Gợi ý quán cà phê Đà Lạt")]


def test_send_message_requires_content(socket_client, session_id):
    socket_client.emit("send_message", {"session_id": session_id, "content": "  "}, namespace=NAMESPACE)
    [(name, payload)] = _events(socket_client)
    assert name == "chat_error"
    assert payload["kind"] == "ValueError"


def test_send_message_unknown_session(socket_client):
    socket_client.emit("send_message", {"session_id": "missing", "content": "hi"}, namespace=NAMESPACE)
    [(name, payload)] = _events(socket_client)
    assert name == "chat_error"
    assert payload["kind"] == "NotFoundError"


def test_upstream_error_reported(socket_client, fake_client, session_id):
    fake_client.deltas = ()
    fake_client.error = RateLimitExceeded()

    socket_client.emit("send_message", {"session_id": session_id, "content": "hi"}, namespace=NAMESPACE)

    [(name, payload)] = _events(socket_client)
    assert name == "chat_error"
    assert payload == {
        "session_id": session_id,
        "error": "Rate limit exceeded. Please try again later.",
        "kind": "RateLimitExceeded",
    }


def test_cancelled_stream_reported(socket_client, fake_client, session_id):
    fake_client.deltas = ("Một ",)
    fake_client.error = StreamCancelled()

    socket_client.emit("send_message", {"session_id": session_id, "content": "hi"}, namespace=NAMESPACE)

    names = [name for name, _ in _events(socket_client)]
    assert names == ["chat_delta", "chat_cancelled"]


def test_second_message_while_streaming_rejected(socket_client, fake_client, session_id):
    socket_client.emit("send_message", {"session_id": session_id, "content": "một"}, namespace=NAMESPACE)
    socket_client.get_received(NAMESPACE)
    fake_client.is_streaming = True

    socket_client.emit("send_message", {"session_id": session_id, "content": "hai"}, namespace=NAMESPACE)

    [(name, payload)] = _events(socket_client)
    assert name == "chat_error"
    assert payload["kind"] == "StreamAlreadyActive"
    assert len(fake_client.calls) == 1


def test_cancel_when_idle(socket_client):
    socket_client.emit("cancel_stream", namespace=NAMESPACE)
    assert _events(socket_client) == [("chat_cancelled", {"status": "idle"})]


def test_cancel_running_stream(socket_client, fake_client, session_id):
    socket_client.emit("send_message", {"session_id": session_id, "content": "hi"}, namespace=NAMESPACE)
    fake_client.is_streaming = True

    socket_client.emit("cancel_stream", namespace=NAMESPACE)

    assert fake_client.cancelled


def test_disconnect_cancels_running_stream(socket_client, fake_client, session_id):
    socket_client.emit("send_message", {"session_id": session_id, "content": "hi"}, namespace=NAMESPACE)
    fake_client.is_streaming = True

    socket_client.disconnect(namespace=NAMESPACE)

    assert fake_client.cancelled


def test_storage_failure_after_deltas_reported(socket_client, fake_client, session_id):
    fake_client.deltas = ("partial",)
    fake_client.error = NotFoundError("Chat session gone")

    socket_client.emit("send_message", {"session_id": session_id, "content": "hi"}, namespace=NAMESPACE)

    events = _events(socket_client)
    assert [name for name, _ in events] == ["chat_delta", "chat_error"]
    assert events[-1][1]["kind"] == "NotFoundError"

    # The connection is free again for the next message.
    fake_client.error = None
    socket_client.emit("send_message", {"session_id": session_id, "content": "again"}, namespace=NAMESPACE)
    assert _events(socket_client)[-1][0] == "chat_complete"


def test_back_to_back_messages_store_one_user_message(app, socket_client, fake_client, session_id, monkeypatch):
    pending = []
    socketio = app.extensions["socketio"]
    monkeypatch.setattr(socketio, "start_background_task", lambda fn, *args: pending.append((fn, args)))

    socket_client.emit("send_message", {"session_id": session_id, "content": "một"}, namespace=NAMESPACE)
    socket_client.emit("send_message", {"session_id": session_id, "content": "hai"}, namespace=NAMESPACE)

    [(name, payload)] = _events(socket_client)
    assert name == "chat_error"
    assert payload["kind"] == "StreamAlreadyActive"
    with app.app_context():
        assert [m.content for m in ChatService.list_messages(session_id)] == ["một"]

    fn, args = pending.pop()
    fn(*args)
    assert [name for name, _ in _events(socket_client)][-1] == "chat_complete"

    socket_client.emit("send_message", {"session_id": session_id, "content": "ba"}, namespace=NAMESPACE)
    assert len(pending) == 1
