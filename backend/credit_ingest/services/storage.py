"""
Raw File Storage

Keeps the uploaded XML exactly as received, on local disk. The database row
only stores the returned path and URL.
"""
import logging
import os
import re
import secrets
import time
from typing import Optional

from ..config import STORAGE_DIR
from .exceptions import StorageError

logger = logging.getLogger(__name__)


class LocalFileStore:
    """Stores raw report files under a single directory."""

    def __init__(self, base_dir: Optional[str] = None, url_prefix: str = "/files"):
        self.base_dir = os.path.abspath(base_dir or STORAGE_DIR)
        self.url_prefix = url_prefix.rstrip("/")
        os.makedirs(self.base_dir, exist_ok=True)

    @staticmethod
    def make_filename(original_name: str) -> str:
        """'My Report.xml' -> 'My_Report-<millis>-<16 hex>.xml'"""
        stem, extension = os.path.splitext(os.path.basename(original_name or "report.xml"))
        safe_stem = re.sub(r"[^A-Za-z0-9_.-]", "_", re.sub(r"\s+", "_", stem)) or "report"
        return f"{safe_stem}-{int(time.time() * 1000)}-{secrets.token_hex(8)}{extension.lower() or '.xml'}"

    def save(self, content: bytes, original_name: str) -> str:
        """Write content to a new unique file. Returns the absolute path."""
        path = os.path.join(self.base_dir, self.make_filename(original_name))
        try:
            with open(path, "wb") as buffer:
                buffer.write(content)
        except OSError as e:
            raise StorageError(f"Failed to save file: {e}", path=path) from e
        logger.info(f"Stored raw report file {os.path.basename(path)} ({len(content)} bytes)")
        return path

    def url_for(self, path: str) -> str:
        return f"{self.url_prefix}/{os.path.basename(path)}"

    def delete(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Failed to delete file: {e}", path=path) from e
