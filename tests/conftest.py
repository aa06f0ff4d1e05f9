import json

import pytest

from travelviet.api.config import ChatClientConfig
from travelviet.api.db import db
from travelviet.app import create_app


# Helpers

def sse_event(content):
    """One completion chunk carrying *content* as an SSE data line."""
    payload = {"choices": [{"index": 0, "delta": {"content": content}}]}
    return ("data: " + json.dumps(payload, ensure_ascii=False) + "\n\n").encode("utf-8")


def sse_body(*contents, done=True):
    body = b": keep-alive\n\n" + b"".join(sse_event(c) for c in contents)
    if done:
        body += b"data: [DONE]\n\n"
    return body


def split_every(data, size):
    return [data[i:i + size] for i in range(0, len(data), size)]


class FakeResponse:
    """Minimal stand-in for a streamed ``requests.Response``."""

    def __init__(self, status_code=200, chunks=(), json_body=None, error=None, has_body=True):
        self.status_code = status_code
        self._chunks = list(chunks)
        self._json = json_body
        self._error = error
        self.raw = object() if has_body else None
        self.closed = False
        self.chunk_size = None

    def iter_content(self, chunk_size=1):
        self.chunk_size = chunk_size
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def close(self):
        self.closed = True


class FakeHttp:
    """Records posts and hands back a prepared response (or raises)."""

    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class RecordingStore:
    def __init__(self, touch_error=None):
        self.messages = []
        self.touched = []
        self.touch_error = touch_error

    def add_message(self, session_id, role, content):
        self.messages.append((session_id, role, content))

    def touch_session(self, session_id):
        if self.touch_error is not None:
            raise self.touch_error
        self.touched.append(session_id)


# Fixtures

@pytest.fixture
def client_config():
    return ChatClientConfig(gateway_url="http://gateway.test/api/ai-planner", api_token="tok", chunk_size=7)


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("FLASK_SECRET_KEY", "test-secret")
    monkeypatch.delenv("AI_GATEWAY_TOKEN", raising=False)
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite://"})
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def http_client(app):
    return app.test_client()


@pytest.fixture
def user_headers():
    return {"X-User-Id": "user-1"}
