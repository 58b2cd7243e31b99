"""
Room Directory

Owns all room state: membership, the admin of each room, pending join
requests and a bounded in-memory message history. Rooms are created by the
first user who joins a free name and deleted as soon as their last member
leaves (admin record, pending requests and history go with them).

Every user-visible effect is pushed through the ConnectionRegistry, so all
methods must be called with the server context lock held.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple

from roomchat.config import HISTORY_LIMIT
from roomchat.tcp_chat import protocol
from roomchat.tcp_chat.errors import AuthorizationError, NotFoundError, NotRoomAdmin

logger = logging.getLogger(__name__)

AWAIT_APPROVAL = "You must wait for admin approval before messaging in this room."


@dataclass
class Room:
    name: str
    admin: str
    members: List[str] = field(default_factory=list)   # join order
    pending: List[str] = field(default_factory=list)   # request order
    history: Deque[dict] = field(default_factory=deque)


class RoomDirectory:
    def __init__(self, registry, history_limit: int = HISTORY_LIMIT):
        self.registry = registry
        self.history_limit = history_limit
        self.rooms: Dict[str, Room] = {}
        self.user_rooms: Dict[str, str] = {}

    # ------------------- queries -------------------

    def get(self, name: str) -> Optional[Room]:
        return self.rooms.get(name)

    def room_of(self, username: str) -> Optional[str]:
        return self.user_rooms.get(username)

    def room_names(self) -> List[str]:
        return list(self.rooms)

    def who(self, username: str) -> Tuple[List[str], Optional[str]]:
        name = self.user_rooms.get(username)
        if name is None or name not in self.rooms:
            return [], None
        return list(self.rooms[name].members), name

    def has_pending(self, username: str) -> bool:
        return any(username in room.pending for room in self.rooms.values())

    def history(self, name: str) -> List[dict]:
        room = self.rooms.get(name)
        return list(room.history) if room else []

    # ------------------- join / leave -------------------

    def join(self, username: str, name: str) -> None:
        send = self.registry.send_to

        room = self.rooms.get(name)
        if room is not None and (username in room.members or username in room.pending):
            send(username, protocol.room_notice(f"Already in or requested to join '{name}'"))
            return

        # leave whatever room we are in first
        current = self.user_rooms.get(username)
        if current is not None:
            self._remove_member(username, current)
            room = self.rooms.get(name)

        if room is None:
            room = Room(name=name, admin=username, history=deque(maxlen=self.history_limit))
            room.members.append(username)
            self.rooms[name] = room
            self.user_rooms[username] = name
            logger.info("Room '%s' created by %s", name, username)
            send(username, protocol.room_notice(f"Joined room '{name}' as admin"))
            send(username, protocol.room_history(name, list(room.history)))
            return

        room.pending.append(username)
        self.registry.send_to(room.admin, protocol.join_request(name, username))
        send(username, protocol.room_notice(
            f"Join request sent to admin of '{name}'. Awaiting approval..."
        ))
        logger.info("%s requested to join '%s'", username, name)

    def leave(self, username: str) -> None:
        name = self.user_rooms.get(username)
        if name is None:
            self.registry.send_to(username, protocol.room_notice("You are not in any room."))
            return
        self._remove_member(username, name)
        self.registry.send_to(username, protocol.room_notice(f"Left room '{name}'"))

    def disconnect(self, username: str) -> None:
        """Drop every trace of a user who went offline."""
        name = self.user_rooms.get(username)
        if name is not None:
            self._remove_member(username, name)
        for room in self.rooms.values():
            if username in room.pending:
                room.pending.remove(username)

    def _remove_member(self, username: str, name: str) -> None:
        room = self.rooms[name]
        room.members.remove(username)
        del self.user_rooms[username]

        if not room.members:
            del self.rooms[name]
            logger.info("Room '%s' deleted (empty)", name)
            return

        self.registry.send_many(room.members, protocol.room_notice(f"{username} left the room."))

        if room.admin == username:
            room.admin = room.members[0]
            logger.info("Admin of '%s' passed from %s to %s", name, username, room.admin)
            self.registry.send_many(
                room.members, protocol.room_notice(f"{room.admin} is now the admin of '{name}'.")
            )
            for requester in room.pending:
                self.registry.send_to(room.admin, protocol.join_request(name, requester))

    # ------------------- approval -------------------

    def _admin_room(self, admin: str, target: Optional[str]) -> Room:
        name = self.user_rooms.get(admin)
        room = self.rooms.get(name) if name else None
        if room is None or room.admin != admin:
            raise NotRoomAdmin()
        if not target or target not in room.pending:
            raise NotFoundError(f"No join request from '{target}' in '{room.name}'.")
        return room

    def approve(self, admin: str, target: Optional[str]) -> None:
        room = self._admin_room(admin, target)
        room.pending.remove(target)
        if not self.registry.is_online(target):
            return

        # the requester may have moved on to another room meanwhile
        current = self.user_rooms.get(target)
        if current is not None:
            self._remove_member(target, current)

        room.members.append(target)
        self.user_rooms[target] = room.name
        self.registry.send_to(target, protocol.room_notice(
            f"Your join request to '{room.name}' was approved!"
        ))
        self.registry.send_to(target, protocol.room_history(room.name, list(room.history)))
        self.registry.send_many(
            room.members, protocol.room_notice(f"{target} joined the room."), exclude=target
        )
        logger.info("%s approved %s into '%s'", admin, target, room.name)

    def reject(self, admin: str, target: Optional[str]) -> None:
        room = self._admin_room(admin, target)
        room.pending.remove(target)
        self.registry.send_to(target, protocol.room_notice(
            f"Your join request to '{room.name}' was rejected by the admin."
        ))
        self.registry.send_to(admin, protocol.room_notice(
            f"Rejected join request from '{target}'."
        ))
        logger.info("%s rejected %s from '%s'", admin, target, room.name)

    # ------------------- messages -------------------

    def post_message(self, username: str, text: str) -> None:
        name = self.user_rooms.get(username)
        if name is None:
            if self.has_pending(username):
                raise AuthorizationError(AWAIT_APPROVAL)
            # not in a room: everyone online hears it
            self.registry.broadcast(protocol.chat_message(username, text), exclude=username)
            return

        room = self.rooms[name]
        room.history.append({"sender": username, "text": text})
        self.registry.send_many(room.members, protocol.chat_message(username, text), exclude=username)
