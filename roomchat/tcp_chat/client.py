import base64
import json
import queue
import socket
import threading
import time
from pathlib import Path
from typing import List, Optional

from roomchat.config import CHAT_PORT, SERVER_HOST


class TcpChatClient:
    """
    Minimal programmatic client for the RoomChat protocol.

    Every server line is decoded and queued; callers drain the queue with
    get_new_messages() or block on a particular reply with wait_for().
    """

    def __init__(self, host: str = SERVER_HOST, port: int = CHAT_PORT):
        self.host = host
        self.port = port
        self.sock = socket.create_connection((self.host, self.port), timeout=5)
        self.sock.settimeout(None)

        self._messages: "queue.Queue[dict]" = queue.Queue()
        self._backlog: List[dict] = []
        self.alive = True

        t = threading.Thread(target=self._recv_loop, daemon=True)
        t.start()

    # ------------------- internal receiver loop -------------------

    def _recv_loop(self):
        try:
            file = self.sock.makefile("r", encoding="utf-8")
            for raw in file:
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    self._messages.put(json.loads(raw))
                except json.JSONDecodeError:
                    self._messages.put({"type": "RAW", "text": raw})
        except OSError as e:
            self._messages.put({"type": "ERROR", "message": f"recv_loop: {e}"})
        finally:
            self.alive = False

    def _send(self, obj: dict):
        self.sock.sendall((json.dumps(obj) + "\n").encode("utf-8"))

    # ------------------- auth -------------------

    def register(self, username: str, password: str):
        self._send({"type": "AUTH", "action": "register", "username": username, "password": password})

    def login(self, username: str, password: str):
        self._send({"type": "AUTH", "action": "login", "username": username, "password": password})

    # ------------------- rooms -------------------

    def command(self, command: str, room: Optional[str] = None, args: Optional[List[str]] = None):
        msg = {"type": "COMMAND", "command": command}
        if room is not None:
            msg["room"] = room
        if args:
            msg["args"] = args
        self._send(msg)

    def join_room(self, room: str):
        self.command("join", room=room)

    def leave_room(self):
        self.command("leave")

    def approve(self, username: str):
        self.command("approve", args=[username])

    def reject(self, username: str):
        self.command("reject", args=[username])

    def list_rooms(self):
        self.command("rooms")

    def list_users(self):
        self.command("users")

    def who(self):
        self.command("who")

    # ------------------- messages -------------------

    def send_message(self, text: str):
        self._send({"type": "MESSAGE", "text": text})

    def send_private(self, recipient: str, text: str):
        self._send({"type": "PRIVATE_MESSAGE", "recipient": recipient, "text": text})

    # ------------------- files -------------------

    def upload(self, filename: str, data: bytes):
        self._send({
            "type": "FILE_UPLOAD",
            "filename": filename,
            "data": base64.b64encode(data).decode("ascii"),
        })

    def upload_file(self, path: str):
        p = Path(path)
        self.upload(p.name, p.read_bytes())

    def download(self, filename: str):
        self._send({"type": "FILE_DOWNLOAD", "filename": filename})

    def send_file(self, recipient: str, filename: str, data: bytes):
        self._send({
            "type": "SEND_FILE",
            "recipient": recipient,
            "filename": filename,
            "data": base64.b64encode(data).decode("ascii"),
        })

    # ------------------- reading replies -------------------

    def get_new_messages(self) -> List[dict]:
        """Drain everything received so far."""
        msgs, self._backlog = self._backlog, []
        while True:
            try:
                msgs.append(self._messages.get_nowait())
            except queue.Empty:
                break
        return msgs

    def wait_for(self, msg_type: str, timeout: float = 5.0) -> dict:
        """Block until a message of msg_type arrives; others are kept for later."""
        for i, msg in enumerate(self._backlog):
            if msg.get("type") == msg_type:
                return self._backlog.pop(i)

        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError(f"No {msg_type} within {timeout}s")
            try:
                msg = self._messages.get(timeout=remaining)
            except queue.Empty:
                continue
            if msg.get("type") == msg_type:
                return msg
            self._backlog.append(msg)

    def close(self):
        self.alive = False
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            self.sock.close()
        except OSError:
            pass
