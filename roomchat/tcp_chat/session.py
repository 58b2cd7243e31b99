"""
Per-connection session state machine.

    UNAUTHENTICATED --login--> AUTHENTICATED
           |                        |
           +------close------> CLOSED <---+

Only AUTH requests are accepted before login. register never logs in.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from roomchat.tcp_chat import protocol
from roomchat.tcp_chat.errors import (
    AlreadyAuthenticated,
    AlreadyOnline,
    InvalidCredentials,
    NotAuthenticated,
    UsernameTaken,
)

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


@dataclass
class PendingDownload:
    """Last direct file offered to this session, kept until the next one."""
    from_user: str
    filename: str
    target_folder: Optional[str] = None


class Session:
    def __init__(self, conn, context):
        self.conn = conn
        self.context = context
        self.state = SessionState.UNAUTHENTICATED
        self.current_user: Optional[str] = None
        self.pending_download: Optional[PendingDownload] = None
        context.registry.add(self)

    @property
    def authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    def require_user(self) -> str:
        if not self.authenticated:
            raise NotAuthenticated()
        return self.current_user

    # ------------------- AUTH -------------------

    def register(self, username: str, password: str) -> None:
        if self.authenticated:
            raise AlreadyAuthenticated()
        if not self.context.credentials.register(username, password):
            raise UsernameTaken()
        self.conn.send(protocol.auth_ok("Registration successful"))

    def login(self, username: str, password: str) -> None:
        if self.authenticated:
            raise AlreadyAuthenticated()
        registry = self.context.registry
        if registry.is_online(username):
            raise AlreadyOnline()
        if not self.context.credentials.validate(username, password):
            raise InvalidCredentials()

        registry.bind(username, self)
        self.current_user = username
        self.state = SessionState.AUTHENTICATED
        self.conn.send(protocol.auth_ok("Login successful"))
        logger.info("%s logged in from %s", username, self.conn.peer)

    # ------------------- direct file context -------------------

    def offer_download(self, offer: PendingDownload) -> None:
        if self.pending_download is not None:
            logger.info(
                "%s: replacing pending download %s from %s",
                self.current_user, self.pending_download.filename, self.pending_download.from_user,
            )
        self.pending_download = offer

    # ------------------- teardown -------------------

    def close(self) -> None:
        """Idempotent. Caller holds the context lock."""
        if self.closed:
            return
        user = self.current_user
        if user is not None:
            self.context.registry.unbind(user, self)
            self.context.rooms.disconnect(user)
            logger.info("%s logged out", user)
        self.context.registry.discard(self)
        self.current_user = None
        self.pending_download = None
        self.state = SessionState.CLOSED
        self.conn.close()
