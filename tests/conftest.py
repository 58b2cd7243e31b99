import json

import pytest

from roomchat.auth.credentials import CredentialStore
from roomchat.tcp_chat.context import ServerContext
from roomchat.tcp_chat.dispatcher import Dispatcher


class FakeConnection:
    """Stands in for a socket Connection; records everything sent."""

    def __init__(self, peer="test"):
        self.peer = peer
        self.sent = []
        self.closed = False

    def send(self, payload):
        self.sent.append(payload)

    def close(self):
        self.closed = True

    def of_type(self, msg_type):
        return [m for m in self.sent if m["type"] == msg_type]

    def last(self):
        return self.sent[-1]

    def clear(self):
        self.sent.clear()


class FakeClient:
    def __init__(self, context, name):
        self.name = name
        self.conn = FakeConnection(peer=name)
        self.dispatcher = Dispatcher(self.conn, context)

    def request(self, **msg):
        self.dispatcher.feed((json.dumps(msg) + "\n").encode("utf-8"))

    def command(self, command, room=None, args=None):
        msg = {"type": "COMMAND", "command": command}
        if room is not None:
            msg["room"] = room
        if args is not None:
            msg["args"] = args
        self.request(**msg)

    @property
    def sent(self):
        return self.conn.sent


@pytest.fixture
def context(tmp_path):
    return ServerContext(
        credentials=CredentialStore(tmp_path / "users.json"),
        upload_dir=tmp_path / "uploads",
    )


@pytest.fixture
def connect(context):
    """connect("alice") -> a logged-in FakeClient with an empty outbox."""

    def _connect(name, password="pw", login=True):
        client = FakeClient(context, name)
        if login:
            context.credentials.register(name, password)
            client.request(type="AUTH", action="login", username=name, password=password)
            assert client.conn.last()["status"] == "success"
            client.conn.clear()
        return client

    return _connect
