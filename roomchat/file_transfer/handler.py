"""
File transfer over the chat connection. Payloads travel base64-encoded
inside the JSON line.

- FILE_UPLOAD:   uploader must be in a room; bytes land in the shared upload
                 store and the other room members are told about it.
- FILE_DOWNLOAD: any authenticated user may fetch any stored filename.
- SEND_FILE:     relayed straight to an online recipient, never written to disk.
"""
import base64
import binascii
import logging

from roomchat.config import MAX_FILE_SIZE
from roomchat.tcp_chat import protocol
from roomchat.tcp_chat.errors import ChatError, FileTooLargeError
from roomchat.tcp_chat.session import PendingDownload

logger = logging.getLogger(__name__)


class FileTransferHandler:
    def __init__(self, store, registry, rooms, max_file_size: int = MAX_FILE_SIZE):
        self.store = store
        self.registry = registry
        self.rooms = rooms
        self.max_file_size = max_file_size

    def _decode(self, data: str) -> bytes:
        # cheap pre-check on the encoded length before allocating
        if len(data) > (self.max_file_size * 4) // 3 + 4:
            raise FileTooLargeError()
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ChatError("Invalid file data") from e
        if len(raw) > self.max_file_size:
            raise FileTooLargeError()
        return raw

    def upload(self, username: str, filename: str, data: str) -> None:
        room = self.rooms.room_of(username)
        if room is None:
            self.registry.send_to(username, protocol.upload_fail(
                filename, "You must join a room before uploading files."
            ))
            return
        try:
            self.store.save(filename, self._decode(data))
        except ChatError as e:
            self.registry.send_to(username, protocol.upload_fail(filename, e.message))
            return
        except OSError as e:
            logger.error("Upload of %s by %s failed: %s", filename, username, e)
            self.registry.send_to(username, protocol.upload_fail(filename, str(e)))
            return

        logger.info("%s uploaded %s in room '%s'", username, filename, room)
        members, _ = self.rooms.who(username)
        self.registry.send_many(members, protocol.upload_ack(filename, username), exclude=username)

    def download(self, username: str, filename: str) -> None:
        try:
            raw = self.store.load(filename)
        except ChatError as e:
            self.registry.send_to(username, protocol.download_fail(filename, e.message))
            return
        except OSError as e:
            logger.error("Download of %s by %s failed: %s", filename, username, e)
            self.registry.send_to(username, protocol.download_fail(filename, str(e)))
            return
        self.registry.send_to(
            username, protocol.download_ok(filename, base64.b64encode(raw).decode("ascii"))
        )

    def send_file(self, username: str, recipient: str, filename: str, data: str, folder=None) -> None:
        target = self.registry.get(recipient)
        if target is None:
            self.registry.send_to(username, protocol.send_file_fail(
                recipient, filename, f"User '{recipient}' is not online."
            ))
            return
        try:
            self._decode(data)
        except ChatError as e:
            self.registry.send_to(username, protocol.send_file_fail(recipient, filename, e.message))
            return

        target.conn.send(protocol.receive_file(username, filename, data))
        target.offer_download(PendingDownload(username, filename, folder))
        self.registry.send_to(username, protocol.send_file_ack(recipient, filename))
        logger.info("%s sent %s directly to %s", username, filename, recipient)
