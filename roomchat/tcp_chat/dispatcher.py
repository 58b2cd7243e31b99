"""
Protocol dispatcher: turns raw bytes from one connection into framed lines,
decodes each into a typed request and routes it to the session, the room
directory or the file handler. Errors never escape to the socket loop;
each becomes a reply to the requesting client.
"""
import logging

from roomchat.config import MAX_LINE_BYTES
from roomchat.tcp_chat import protocol
from roomchat.tcp_chat.errors import (
    AuthError,
    ChatError,
    FrameTooLargeError,
    NotAuthenticated,
    ProtocolDecodeError,
)
from roomchat.tcp_chat.framing import LineBuffer
from roomchat.tcp_chat.protocol import (
    AuthRequest,
    CommandRequest,
    FileDownloadRequest,
    FileUploadRequest,
    MessageRequest,
    PrivateMessageRequest,
    SendFileRequest,
)
from roomchat.tcp_chat.session import Session

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, conn, context, max_line_bytes: int = MAX_LINE_BYTES):
        self.conn = conn
        self.context = context
        self.buffer = LineBuffer(max_line_bytes)
        with context.lock:
            self.session = Session(conn, context)

        self._handlers = {
            CommandRequest: self._on_command,
            MessageRequest: self._on_message,
            PrivateMessageRequest: self._on_private_message,
            FileUploadRequest: self._on_upload,
            FileDownloadRequest: self._on_download,
            SendFileRequest: self._on_send_file,
        }
        self._commands = {
            "users": self._cmd_users,
            "who": self._cmd_who,
            "rooms": self._cmd_rooms,
            "join": self._cmd_join,
            "leave": self._cmd_leave,
            "approve": self._cmd_approve,
            "reject": self._cmd_reject,
        }

    # ------------------- input -------------------

    def feed(self, data: bytes) -> None:
        """Handle one network read: zero, one or many lines, maybe partial."""
        for line in self.buffer.feed(data):
            if line is None:
                self.conn.send(protocol.error(FrameTooLargeError.default_message))
                continue
            if not line.strip():
                continue
            self.handle_line(line)

    def handle_line(self, line: bytes) -> None:
        try:
            request = protocol.decode_request(line)
        except ProtocolDecodeError as e:
            logger.debug("Bad line from %s: %s", self.conn.peer, e.message)
            self.conn.send(protocol.error(e.message))
            return

        with self.context.lock:
            if self.session.closed:
                return
            self.dispatch(request)

    def close(self) -> None:
        with self.context.lock:
            self.session.close()

    # ------------------- routing -------------------

    def dispatch(self, request) -> None:
        """Route one decoded request. Caller holds the context lock."""
        try:
            if isinstance(request, AuthRequest):
                self._on_auth(request)
                return
            user = self.session.require_user()
            self._handlers[type(request)](user, request)
        except AuthError as e:
            self.conn.send(protocol.auth_fail(e.message, type(e).__name__))
        except NotAuthenticated as e:
            self.conn.send(protocol.error(e.message))
        except ChatError as e:
            self.conn.send(protocol.room_notice(e.message))

    def _on_auth(self, req: AuthRequest) -> None:
        if req.action == "register":
            self.session.register(req.username, req.password)
        else:
            self.session.login(req.username, req.password)

    def _on_command(self, user: str, req: CommandRequest) -> None:
        self._commands[req.command](user, req)

    def _on_message(self, user: str, req: MessageRequest) -> None:
        self.context.rooms.post_message(user, req.text)

    def _on_private_message(self, user: str, req: PrivateMessageRequest) -> None:
        msg = protocol.private_message(user, req.recipient, req.text)
        if self.context.registry.send_to(req.recipient, msg):
            if req.recipient != user:
                self.conn.send(msg)
        else:
            self.conn.send(protocol.private_message(
                protocol.SERVER_SENDER, user, f"User '{req.recipient}' is not online."
            ))

    def _on_upload(self, user: str, req: FileUploadRequest) -> None:
        self.context.files.upload(user, req.filename, req.data)

    def _on_download(self, user: str, req: FileDownloadRequest) -> None:
        self.context.files.download(user, req.filename)

    def _on_send_file(self, user: str, req: SendFileRequest) -> None:
        self.context.files.send_file(user, req.recipient, req.filename, req.data, req.folder)

    # ------------------- commands -------------------

    def _cmd_users(self, user, req):
        self.conn.send(protocol.users_list(self.context.registry.online_users()))

    def _cmd_who(self, user, req):
        members, room = self.context.rooms.who(user)
        self.conn.send(protocol.who_list(members, room))

    def _cmd_rooms(self, user, req):
        self.conn.send(protocol.rooms_list(self.context.rooms.room_names()))

    def _cmd_join(self, user, req):
        room = req.room or (req.args[0] if req.args else None)
        if not room:
            self.conn.send(protocol.room_notice("Usage: /join <room>"))
            return
        self.context.rooms.join(user, room)

    def _cmd_leave(self, user, req):
        self.context.rooms.leave(user)

    def _cmd_approve(self, user, req):
        self.context.rooms.approve(user, req.args[0] if req.args else None)

    def _cmd_reject(self, user, req):
        self.context.rooms.reject(user, req.args[0] if req.args else None)
