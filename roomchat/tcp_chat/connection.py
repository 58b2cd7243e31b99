import logging
import queue
import socket
import threading

from roomchat.config import MAX_OUTBOX
from roomchat.tcp_chat.framing import encode_msg

logger = logging.getLogger(__name__)

_CLOSE = object()


class Connection:
    """
    A client socket with its own bounded outbound queue.

    send() only enqueues, so a slow or dead peer never blocks whoever is
    delivering to it. A background writer thread drains the queue in order;
    a failed write is logged and the rest of the queue is dropped.

    A peer that falls max_outbox messages behind is cut off: the socket is
    shut down, which fails any sendall stuck on it and gives the reader
    thread EOF, so the normal disconnect cleanup runs.
    """

    def __init__(self, sock: socket.socket, addr, max_outbox: int = MAX_OUTBOX):
        self.sock = sock
        self.peer = f"{addr[0]}:{addr[1]}" if isinstance(addr, tuple) else str(addr)
        self._outbox: "queue.Queue" = queue.Queue(maxsize=max_outbox)
        self.alive = True

        self._writer = threading.Thread(target=self._write_loop, daemon=True)
        self._writer.start()

    def send(self, payload: dict) -> None:
        if not self.alive:
            return
        try:
            self._outbox.put_nowait(payload)
        except queue.Full:
            logger.warning("Outbox for %s is full; dropping the connection", self.peer)
            self.alive = False
            self._shutdown()

    def _write_loop(self):
        while True:
            item = self._outbox.get()
            if item is _CLOSE:
                break
            try:
                self.sock.sendall(encode_msg(item))
            except OSError as e:
                logger.warning("Write to %s failed: %s", self.peer, e)
                self.alive = False
                break
        self._shutdown()
        try:
            self.sock.close()
        except OSError:
            pass

    def _shutdown(self):
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def close(self) -> None:
        """Flush what is already queued, then close the socket."""
        if not self.alive:
            return
        self.alive = False
        # a full queue means the peer is stuck; don't wait for room for _CLOSE
        try:
            self._outbox.put_nowait(_CLOSE)
        except queue.Full:
            self._shutdown()
