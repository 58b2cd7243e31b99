# Main TCP chat server
import argparse
import logging
import socket
import threading

from roomchat.config import CHAT_PORT, LISTEN_BACKLOG, LOG_FORMAT, LOG_LEVEL, RECV_SIZE
from roomchat.tcp_chat.connection import Connection
from roomchat.tcp_chat.context import ServerContext
from roomchat.tcp_chat.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


class ChatServer:
    """
    Accepts TCP clients and runs one reader thread per connection.

    Reader threads feed raw bytes to their Dispatcher; all shared state is
    mutated under the context lock, one request at a time.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = CHAT_PORT, context: ServerContext | None = None):
        self.host = host
        self.port = port
        self.context = context or ServerContext()
        self.sock: socket.socket | None = None
        self._running = threading.Event()
        self._running.set()

    def bind(self) -> tuple:
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        s.bind((self.host, self.port))
        s.listen(LISTEN_BACKLOG)
        s.settimeout(0.5)  # so shutdown() is noticed
        self.sock = s
        self.port = s.getsockname()[1]
        return s.getsockname()

    def serve_forever(self):
        if self.sock is None:
            self.bind()
        logger.info("TCP chat server listening on %s:%d", self.host, self.port)
        logger.info("Upload dir: %s", self.context.store.upload_dir)
        while self._running.is_set():
            try:
                conn, addr = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                if self._running.is_set():
                    logger.exception("accept() failed")
                break
            t = threading.Thread(target=self.handle_client, args=(conn, addr), daemon=True)
            t.start()

    def shutdown(self):
        self._running.clear()
        if self.sock is not None:
            try:
                self.sock.close()
            except OSError:
                pass

    def handle_client(self, sock: socket.socket, addr):
        conn = Connection(sock, addr)
        logger.info("New connection from %s", conn.peer)
        dispatcher = Dispatcher(conn, self.context)
        try:
            while True:
                data = sock.recv(RECV_SIZE)
                if not data:
                    break
                dispatcher.feed(data)
        except OSError as e:
            logger.info("Connection error with %s: %s", conn.peer, e)
        finally:
            dispatcher.close()
            logger.info("Connection closed from %s", conn.peer)


def main(argv=None):
    parser = argparse.ArgumentParser(description="RoomChat TCP server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=CHAT_PORT)
    args = parser.parse_args(argv)

    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    server = ChatServer(args.host, args.port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.shutdown()


if __name__ == "__main__":
    main()
