# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
On-disk storage for asset attachments.

Files are written under ``upload_dir`` with a generated name
(``<epoch-ms>-<random><ext>``) and served by the ``/uploads`` static mount.
The client's file name is kept only in the database.
"""

import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from core.logger import get_logger

log = get_logger("storage")


class AttachmentTooLarge(Exception):
    pass


@dataclass(frozen=True)
class StoredFile:
    file_url: str
    file_name: Optional[str]
    file_type: Optional[str]


class AttachmentStorage:
    def __init__(self, upload_dir: str, max_bytes: int, url_prefix: str = "/uploads"):
        self.root = Path(upload_dir)
        self.max_bytes = max_bytes
        self.url_prefix = url_prefix.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, filename: Optional[str], content: bytes, content_type: Optional[str]) -> StoredFile:
        if len(content) > self.max_bytes:
            raise AttachmentTooLarge(
                f"{filename or 'file'} exceeds the {self.max_bytes // (1024 * 1024)} MB limit"
            )

        ext = Path(filename or "").suffix.lower()[:16]
        stored_name = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"
        (self.root / stored_name).write_bytes(content)

        return StoredFile(
            file_url=f"{self.url_prefix}/{stored_name}",
            file_name=filename,
            file_type=content_type,
        )

    def delete(self, file_url: str) -> bool:
        """Remove the file behind *file_url*; missing files are ignored."""
        # Only the final path component is trusted – never a client-supplied path
        path = self.root / Path(file_url).name
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as exc:
            log.warning("Could not delete attachment %s: %s", path, exc)
            return False
        return True
