"""
Wire protocol: typed requests decoded from JSON lines, plus builders for
every response the server emits.

Requests (client -> server), discriminated by "type":
    AUTH            {action: register|login, username, password}
    COMMAND         {command: users|who|rooms|join|leave|approve|reject, room?, args?}
    MESSAGE         {text}
    PRIVATE_MESSAGE {recipient, text}
    FILE_UPLOAD     {filename, data}          data is base64
    FILE_DOWNLOAD   {filename}
    SEND_FILE       {recipient, filename, data, folder?}
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from roomchat.tcp_chat.errors import ProtocolDecodeError

AUTH_ACTIONS = ("register", "login")
COMMANDS = ("users", "who", "rooms", "join", "leave", "approve", "reject")

SERVER_SENDER = "Server"


@dataclass
class AuthRequest:
    action: str
    username: str
    password: str


@dataclass
class CommandRequest:
    command: str
    room: Optional[str] = None
    args: List[str] = field(default_factory=list)


@dataclass
class MessageRequest:
    text: str


@dataclass
class PrivateMessageRequest:
    recipient: str
    text: str


@dataclass
class FileUploadRequest:
    filename: str
    data: str


@dataclass
class FileDownloadRequest:
    filename: str


@dataclass
class SendFileRequest:
    recipient: str
    filename: str
    data: str
    folder: Optional[str] = None


Request = Union[
    AuthRequest,
    CommandRequest,
    MessageRequest,
    PrivateMessageRequest,
    FileUploadRequest,
    FileDownloadRequest,
    SendFileRequest,
]


def _require_str(msg: Dict[str, Any], key: str) -> str:
    value = msg.get(key)
    if not isinstance(value, str):
        raise ProtocolDecodeError(f"Field '{key}' is required")
    return value


def _optional_str(msg: Dict[str, Any], key: str) -> Optional[str]:
    value = msg.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ProtocolDecodeError(f"Field '{key}' must be a string")
    return value


def _decode_auth(msg):
    action = _require_str(msg, "action")
    if action not in AUTH_ACTIONS:
        raise ProtocolDecodeError(f"Unknown AUTH action '{action}'")
    return AuthRequest(action, _require_str(msg, "username"), _require_str(msg, "password"))


def _decode_command(msg):
    command = _require_str(msg, "command")
    if command not in COMMANDS:
        raise ProtocolDecodeError(f"Unknown command '{command}'")
    args = msg.get("args") or []
    if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
        raise ProtocolDecodeError("Field 'args' must be a list of strings")
    return CommandRequest(command, _optional_str(msg, "room"), args)


_DECODERS = {
    "AUTH": _decode_auth,
    "COMMAND": _decode_command,
    "MESSAGE": lambda m: MessageRequest(_require_str(m, "text")),
    "PRIVATE_MESSAGE": lambda m: PrivateMessageRequest(
        _require_str(m, "recipient"), _require_str(m, "text")
    ),
    "FILE_UPLOAD": lambda m: FileUploadRequest(
        _require_str(m, "filename"), _require_str(m, "data")
    ),
    "FILE_DOWNLOAD": lambda m: FileDownloadRequest(_require_str(m, "filename")),
    "SEND_FILE": lambda m: SendFileRequest(
        _require_str(m, "recipient"),
        _require_str(m, "filename"),
        _require_str(m, "data"),
        _optional_str(m, "folder"),
    ),
}


def decode_request(line: Union[bytes, str]) -> Request:
    """Decode one framed line into a typed request or raise ProtocolDecodeError."""
    try:
        if isinstance(line, bytes):
            line = line.decode("utf-8")
        # deeply nested arrays overflow the parser stack well under MAX_LINE_BYTES
        msg = json.loads(line)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise ProtocolDecodeError() from e

    if not isinstance(msg, dict):
        raise ProtocolDecodeError()
    msg_type = msg.get("type")
    if not isinstance(msg_type, str):
        raise ProtocolDecodeError("Missing or invalid message type")
    decoder = _DECODERS.get(msg_type)
    if decoder is None:
        raise ProtocolDecodeError(f"Unknown message type {msg_type!r}")
    return decoder(msg)


# ---------------------------------------------------------------------------
# Responses (server -> client)
# ---------------------------------------------------------------------------

def auth_ok(message: str) -> dict:
    return {"type": "AUTH", "status": "success", "message": message}


def auth_fail(message: str, error: Optional[str] = None) -> dict:
    resp = {"type": "AUTH", "status": "fail", "message": message}
    if error:
        resp["error"] = error
    return resp


def error(message: str) -> dict:
    return {"type": "ERROR", "message": message}


def room_notice(message: str) -> dict:
    return {"type": "ROOM", "message": message}


def chat_message(sender: str, text: str) -> dict:
    return {"type": "MESSAGE", "sender": sender, "text": text}


def private_message(sender: str, recipient: str, text: str) -> dict:
    return {"type": "PRIVATE_MESSAGE", "sender": sender, "recipient": recipient, "text": text}


def users_list(users: List[str]) -> dict:
    return {"type": "USERS", "users": users}


def who_list(users: List[str], room: Optional[str]) -> dict:
    return {"type": "WHO", "users": users, "room": room}


def rooms_list(rooms: List[str]) -> dict:
    return {"type": "ROOMS", "rooms": rooms}


def room_history(room: str, history: List[dict]) -> dict:
    return {"type": "ROOM_HISTORY", "room": room, "history": history}


def join_request(room: str, username: str) -> dict:
    return {"type": "ROOM_JOIN_REQUEST", "room": room, "username": username}


def upload_ack(filename: str, sender: str) -> dict:
    return {"type": "FILE_UPLOAD_ACK", "filename": filename, "sender": sender}


def upload_fail(filename: str, message: str) -> dict:
    return {"type": "FILE_UPLOAD_FAIL", "filename": filename, "message": message}


def download_ok(filename: str, data: str) -> dict:
    return {"type": "FILE_DOWNLOAD", "filename": filename, "data": data}


def download_fail(filename: str, message: str) -> dict:
    return {"type": "FILE_DOWNLOAD_FAIL", "filename": filename, "message": message}


def receive_file(sender: str, filename: str, data: str) -> dict:
    return {"type": "RECEIVE_FILE", "sender": sender, "filename": filename, "data": data}


def send_file_ack(recipient: str, filename: str) -> dict:
    return {"type": "SEND_FILE_ACK", "recipient": recipient, "filename": filename}


def send_file_fail(recipient: str, filename: str, message: str) -> dict:
    return {"type": "SEND_FILE_FAIL", "recipient": recipient, "filename": filename, "message": message}
