"""
Blob store for product images.

Files live flat in one directory and are addressed publicly as
`/uploads/<filename>`; `api/main.py` serves that prefix statically.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from uuid import uuid4

from core.errors import FileCleanupFailure

PUBLIC_PREFIX = "/uploads"

logger = logging.getLogger(__name__)


def generate_filename(ext: str) -> str:
    """
    Millisecond timestamp plus a short random suffix, keeping the extension.

    The suffix keeps names unique when several files land in the same ms.
    """
    return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}{ext.lower()}"


class BlobStore:
    def __init__(self, root: Path, *, log: logging.Logger | None = None) -> None:
        self.root = Path(root)
        self.log = log or logger

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def public_path(self, filename: str) -> str:
        return f"{PUBLIC_PREFIX}/{filename}"

    def path_for(self, public_path: str) -> Path:
        """
        Map `/uploads/<filename>` to a file inside `root`.
        """
        prefix = PUBLIC_PREFIX + "/"
        if not public_path.startswith(prefix):
            raise FileCleanupFailure(f"Not an upload path: {public_path!r}")

        filename = public_path[len(prefix):]
        if not filename or "/" in filename or "\\" in filename or filename in {".", ".."}:
            raise FileCleanupFailure(f"Invalid upload filename: {public_path!r}")

        return self.root / filename

    def save(self, ext: str, data: bytes) -> str:
        """
        Write `data` under a fresh generated name and return its public path.
        """
        self.ensure_root()
        filename = generate_filename(ext)
        (self.root / filename).write_bytes(data)
        return self.public_path(filename)

    def exists(self, public_path: str) -> bool:
        try:
            return self.path_for(public_path).is_file()
        except FileCleanupFailure:
            return False

    def delete(self, public_path: str) -> None:
        path = self.path_for(public_path)
        try:
            path.unlink()
        except OSError as e:
            raise FileCleanupFailure(f"Failed to delete {public_path}") from e

    def delete_many(self, public_paths: list[str]) -> int:
        """
        Best-effort delete. Failures are logged, never raised.

        Returns how many files were removed.
        """
        deleted = 0
        for public_path in public_paths:
            try:
                self.delete(public_path)
            except FileCleanupFailure as e:
                self.log.warning("image_delete_failed path=%s error=%s", public_path, e.__cause__ or e)
                continue
            deleted += 1
            self.log.info("image_deleted path=%s", public_path)
        return deleted

    def delete_many_background(self, public_paths: list[str]) -> None:
        """
        BackgroundTasks entrypoint. Sync, so Starlette runs it in the threadpool.

        This should never raise to the request path; we just log failures.
        """
        try:
            self.delete_many(public_paths)
        except Exception:
            self.log.exception("image_cleanup_failed paths=%s", public_paths)
