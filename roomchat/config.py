"""
RoomChat Configuration

Change SERVER_HOST to the IP address of the machine running the servers.
- For local development: "127.0.0.1"
- For LAN access: use "0.0.0.0" on the server and the server's IP on clients
"""
import logging
from pathlib import Path

# ============================================================================
# SERVER CONFIGURATION
# ============================================================================

SERVER_HOST = "127.0.0.1"

# Server ports
CHAT_PORT = 5000
API_PORT = 8000

LISTEN_BACKLOG = 20

# =============================
# STORAGE
# =============================
BASE_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = BASE_DIR / "data"
UPLOAD_DIR = DATA_DIR / "uploads"     # flat, filename-addressed
USERS_FILE = DATA_DIR / "users.json"

# =============================
# ROOMS
# =============================
HISTORY_LIMIT = 10  # messages kept per room, oldest evicted first

# =============================
# NETWORKING / LIMITS
# =============================
RECV_SIZE = 4096
MAX_FILE_SIZE = 10 * 1024 * 1024  # decoded bytes per upload / direct send
# base64 inflates by 4/3; leave room for the JSON envelope
MAX_LINE_BYTES = (MAX_FILE_SIZE * 4) // 3 + 64 * 1024
# queued outbound messages per client; a peer this far behind is dropped
MAX_OUTBOX = 256

# =============================
# LOGGING
# =============================
LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s %(message)s"
