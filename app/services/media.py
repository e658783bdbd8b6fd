import logging
import os
import uuid
from typing import BinaryIO, Protocol

from app.core.config import Settings
from app.core.errors import UploadError

logger = logging.getLogger("app.media")

ALLOWED_PREFIXES = ("image/", "video/")
CHUNK_BYTES = 1024 * 1024


class Upload(Protocol):
    """Anything shaped like starlette's UploadFile."""

    filename: str | None
    content_type: str | None
    file: BinaryIO


class MediaStore(Protocol):
    def save(self, upload: Upload) -> str:
        """Persist the upload and return a public URL for it."""
        ...

    def delete(self, url: str) -> None:
        """Remove media previously returned by `save`; unknown URLs are ignored."""
        ...


class LocalMediaStore:
    def __init__(self, root: str, base_url: str, max_bytes: int):
        self.root = root
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalMediaStore":
        return cls(
            root=settings.MEDIA_ROOT,
            base_url=settings.MEDIA_BASE_URL,
            max_bytes=settings.MAX_UPLOAD_BYTES,
        )

    def _target_name(self, upload: Upload) -> str:
        _, ext = os.path.splitext(upload.filename or "")
        return f"{uuid.uuid4().hex}{ext.lower()[:10]}"

    def save(self, upload: Upload) -> str:
        content_type = (upload.content_type or "").lower()
        if not content_type.startswith(ALLOWED_PREFIXES):
            raise UploadError(f"Unsupported file type: {content_type or 'unknown'}")

        name = self._target_name(upload)
        path = os.path.join(self.root, name)
        written = 0
        try:
            os.makedirs(self.root, exist_ok=True)
            upload.file.seek(0)
            with open(path, "wb") as out:
                while True:
                    chunk = upload.file.read(CHUNK_BYTES)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise UploadError("Uploaded file is too large")
                    out.write(chunk)
            if written == 0:
                raise UploadError("Uploaded file is empty")
        except UploadError:
            self._remove(path)
            raise
        except OSError as exc:
            logger.exception("media write failed name=%s", name)
            self._remove(path)
            raise UploadError("Error while uploading file") from exc

        logger.info("stored media name=%s bytes=%s", name, written)
        return f"{self.base_url}/{name}"

    def _remove(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass

    def delete(self, url: str) -> None:
        prefix = f"{self.base_url}/"
        if not url or not url.startswith(prefix):
            return
        name = os.path.basename(url[len(prefix):])
        if not name:
            return
        self._remove(os.path.join(self.root, name))
        logger.info("removed media name=%s", name)
