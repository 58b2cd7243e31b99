"""
Credential store: username -> password record, persisted as JSON.

Format: { "alice": { "salt": "<hex>", "hash": "<hex>" } }
"""
import hashlib
import hmac
import json
import logging
import os
import secrets
import threading
from pathlib import Path
from typing import Dict, Optional

from roomchat.config import USERS_FILE
from roomchat.tcp_chat.errors import CredentialStoreError

logger = logging.getLogger(__name__)

PBKDF2_ROUNDS = 100_000


def _hash_password(password: str, salt: bytes) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ROUNDS).hex()


class CredentialStore:
    def __init__(self, users_file: Optional[Path] = None):
        self.users_file = Path(users_file or USERS_FILE)
        self._lock = threading.Lock()
        self.users_file.parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> Dict[str, dict]:
        if not self.users_file.exists():
            return {}
        try:
            with open(self.users_file, "r", encoding="utf-8") as f:
                users = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Unreadable users file %s: %s", self.users_file, e)
            raise CredentialStoreError() from e
        if not isinstance(users, dict):
            logger.error("Users file %s does not hold an object", self.users_file)
            raise CredentialStoreError()
        return users

    def _save(self, users: Dict[str, dict]) -> None:
        tmp = self.users_file.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(users, f, indent=2)
        os.replace(tmp, self.users_file)

    def register(self, username: str, password: str) -> bool:
        """
        False if the username already exists (or is empty).

        Raises CredentialStoreError, without touching the file, when the
        existing users file cannot be read.
        """
        if not username:
            return False
        with self._lock:
            users = self._load()
            if username in users:
                return False
            salt = secrets.token_bytes(16)
            users[username] = {"salt": salt.hex(), "hash": _hash_password(password, salt)}
            self._save(users)
        logger.info("Registered user %s", username)
        return True

    def exists(self, username: str) -> bool:
        with self._lock:
            return username in self._load()

    def validate(self, username: str, password: str) -> bool:
        with self._lock:
            record = self._load().get(username)
        if not record:
            return False
        expected = _hash_password(password, bytes.fromhex(record["salt"]))
        return hmac.compare_digest(expected, record["hash"])
