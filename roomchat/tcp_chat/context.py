import threading
from pathlib import Path
from typing import Optional

from roomchat.auth.credentials import CredentialStore
from roomchat.config import HISTORY_LIMIT, MAX_FILE_SIZE
from roomchat.file_transfer.handler import FileTransferHandler
from roomchat.file_transfer.store import UploadStore
from roomchat.room_mgmt.directory import RoomDirectory
from roomchat.tcp_chat.registry import ConnectionRegistry


class ServerContext:
    """
    The single owned aggregate of shared server state.

    Connection threads only touch the registry, rooms and file handler while
    holding `lock`, which serializes every state mutation; socket writes
    happen on per-connection writer threads, outside the lock.
    """

    def __init__(
        self,
        credentials: Optional[CredentialStore] = None,
        upload_dir: Optional[Path] = None,
        history_limit: int = HISTORY_LIMIT,
        max_file_size: int = MAX_FILE_SIZE,
    ):
        self.lock = threading.Lock()
        self.credentials = credentials or CredentialStore()
        self.registry = ConnectionRegistry()
        self.rooms = RoomDirectory(self.registry, history_limit=history_limit)
        self.store = UploadStore(upload_dir)
        self.files = FileTransferHandler(self.store, self.registry, self.rooms, max_file_size=max_file_size)
