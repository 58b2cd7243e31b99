from typing import Dict, Iterable, List, Optional, Set

from roomchat.tcp_chat.errors import AlreadyOnline


class ConnectionRegistry:
    """
    Every live session, plus the username <-> session mapping for the
    authenticated ones. A username is online iff it is bound here.

    Not thread-safe on its own; callers hold the server context lock.
    """

    def __init__(self):
        self._sessions: Set = set()
        self._by_user: Dict[str, object] = {}  # insertion order = login order

    # ----- sessions -----

    def add(self, session) -> None:
        self._sessions.add(session)

    def discard(self, session) -> None:
        self._sessions.discard(session)

    def __len__(self) -> int:
        return len(self._sessions)

    # ----- users -----

    def bind(self, username: str, session) -> None:
        if username in self._by_user:
            raise AlreadyOnline()
        self._by_user[username] = session

    def unbind(self, username: str, session=None) -> None:
        # only drop the entry if it still points at this session
        if session is None or self._by_user.get(username) is session:
            self._by_user.pop(username, None)

    def is_online(self, username: str) -> bool:
        return username in self._by_user

    def get(self, username: str):
        return self._by_user.get(username)

    def online_users(self) -> List[str]:
        return list(self._by_user)

    # ----- delivery -----

    def send_to(self, username: str, payload: dict) -> bool:
        """Queue payload for username's connection. False if offline."""
        session = self._by_user.get(username)
        if session is None:
            return False
        session.conn.send(payload)
        return True

    def send_many(self, usernames: Iterable[str], payload: dict, exclude: Optional[str] = None) -> None:
        for name in usernames:
            if name == exclude:
                continue
            self.send_to(name, payload)

    def broadcast(self, payload: dict, exclude: Optional[str] = None) -> None:
        """Send to every online user except `exclude`."""
        self.send_many(list(self._by_user), payload, exclude=exclude)
