"""
Upload store: one flat directory shared by every room, addressed by filename.
Two uploads with the same name overwrite each other (last writer wins).
"""
import datetime
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from roomchat.config import UPLOAD_DIR
from roomchat.tcp_chat.errors import InvalidFilenameError, NotFoundError

logger = logging.getLogger(__name__)


def check_filename(filename: str) -> str:
    """Only bare names are addressable; anything path-like is refused."""
    if (
        not filename
        or filename in (".", "..")
        or "/" in filename
        or "\\" in filename
        or "\x00" in filename
    ):
        raise InvalidFilenameError(f"Invalid filename '{filename}'")
    return filename


class UploadStore:
    def __init__(self, upload_dir: Optional[Path] = None):
        self.upload_dir = Path(upload_dir or UPLOAD_DIR)
        os.makedirs(self.upload_dir, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        return self.upload_dir / check_filename(filename)

    def save(self, filename: str, data: bytes) -> Path:
        dest = self.path_for(filename)
        # write aside then swap in, so readers never see a torn file
        fd, tmp = tempfile.mkstemp(dir=self.upload_dir, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, dest)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        logger.info("Saved %s (%d bytes)", filename, len(data))
        return dest

    def load(self, filename: str) -> bytes:
        path = self.path_for(filename)
        if not path.is_file():
            raise NotFoundError("File not found")
        return path.read_bytes()

    def exists(self, filename: str) -> bool:
        try:
            return self.path_for(filename).is_file()
        except InvalidFilenameError:
            return False

    def list_files(self) -> List[Dict]:
        """Name, size and creation time of each stored file, newest first."""
        files = []
        for p in self.upload_dir.iterdir():
            if p.is_file() and not p.name.startswith(".upload-"):
                st = p.stat()
                created = datetime.datetime.fromtimestamp(st.st_ctime).isoformat(timespec="seconds")
                files.append({"name": p.name, "size": st.st_size, "created": created})
        files.sort(key=lambda x: x["created"], reverse=True)
        return files
