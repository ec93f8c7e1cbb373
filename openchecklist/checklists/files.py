"""Local file storage for referenced checklist files.

Uploads are first written to a staging directory and only published under
their final name (an atomic rename) once the database row that references
them has committed. Readers therefore never see a partially written file.
"""
import logging
import os
import re
import tempfile
import time
from datetime import timedelta
from pathlib import Path

logger = logging.getLogger(__name__)

STAGING_DIR = ".staging"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def safe_filename(name: str | None, fallback: str = "") -> str:
    """Strip path components and characters outside [A-Za-z0-9._-]."""
    base = Path(name or "").name
    cleaned = _UNSAFE_CHARS.sub("", base).lstrip(".")
    return cleaned or fallback


class FileStorage:
    """A directory of published files plus a staging area."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.staging = self.root / STAGING_DIR

    def path_for(self, filename: str) -> Path:
        name = safe_filename(filename)
        if not name:
            raise ValueError(f"Unusable filename: {filename!r}")
        return self.root / name

    def read(self, filename: str) -> bytes | None:
        """Return the file contents, or None when it is not there."""
        try:
            return self.path_for(filename).read_bytes()
        except (FileNotFoundError, IsADirectoryError, ValueError):
            return None

    def stage(self, data: bytes) -> Path:
        """Write data to a private temporary file and return its path."""
        self.staging.mkdir(parents=True, exist_ok=True)
        fd, path = tempfile.mkstemp(dir=self.staging, suffix=".part")
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        return Path(path)

    def publish(self, staged: Path, filename: str) -> Path:
        """Move a staged file to its final name atomically."""
        target = self.path_for(filename)
        os.replace(staged, target)
        logger.info(f"Published file {target.name}")
        return target

    def discard(self, staged: Path) -> None:
        staged.unlink(missing_ok=True)
        logger.info(f"Discarded staged upload {staged.name}")

    def delete(self, filename: str) -> bool:
        try:
            self.path_for(filename).unlink()
        except (FileNotFoundError, ValueError):
            return False
        logger.info(f"Deleted file {filename}")
        return True

    def purge_stale(self, max_age: timedelta) -> int:
        """Remove staged files older than max_age left by interrupted uploads."""
        if not self.staging.is_dir():
            return 0
        cutoff = time.time() - max_age.total_seconds()
        removed = 0
        for path in self.staging.glob("*.part"):
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
        if removed:
            logger.info(f"Purged {removed} stale staged uploads")
        return removed
