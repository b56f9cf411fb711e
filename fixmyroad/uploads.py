import logging
import os
import time
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from fixmyroad.config import MAX_UPLOAD_BYTES
from fixmyroad.errors import UploadTooLarge
from fixmyroad.models import generate_id

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class UploadStorage:
    """Stores report photos on the local filesystem and maps them to public paths."""

    def __init__(self, directory, max_bytes: int = MAX_UPLOAD_BYTES, public_prefix: str = "/uploads"):
        self.directory = Path(directory)
        self.max_bytes = max_bytes
        self.public_prefix = public_prefix.rstrip("/")

    def ensure_dir(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_filename(original: Optional[str]) -> str:
        """<epoch ms>-<random suffix><original extension>"""
        ext = os.path.splitext(original or "")[1]
        return f"{int(time.time() * 1000)}-{generate_id(6)}{ext}"

    def public_path(self, filename: str) -> str:
        return f"{self.public_prefix}/{filename}"

    def path_for(self, public_path: str) -> Path:
        # Only the basename counts, so stored paths can't escape the upload dir
        return self.directory / os.path.basename(public_path)

    async def save(self, upload: Optional[UploadFile]) -> Optional[str]:
        """
        Stream an uploaded file to disk and return its public path.
        Returns None when no file was attached. Raises UploadTooLarge past
        the size ceiling, leaving nothing behind on disk.
        """
        if upload is None or not upload.filename:
            return None

        self.ensure_dir()
        filename = self.generate_filename(upload.filename)
        target = self.directory / filename
        written = 0
        try:
            with open(target, "wb") as fh:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise UploadTooLarge()
                    fh.write(chunk)
        except BaseException:
            target.unlink(missing_ok=True)
            raise
        finally:
            await upload.close()

        logger.info("Stored upload %s (%d bytes)", filename, written)
        return self.public_path(filename)

    def remove(self, public_path: Optional[str]) -> bool:
        """Best-effort delete; failures are logged, never raised."""
        if not public_path or os.path.basename(public_path) in ("", ".", ".."):
            return False
        path = self.path_for(public_path)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Could not delete upload %s: %s", path, e)
            return False
        return True
