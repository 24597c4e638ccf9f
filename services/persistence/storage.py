from __future__ import annotations

import logging
import threading
from pathlib import Path, PurePosixPath

from core.errors import NotFoundError, UploadError
from core.security import create_signed_path
from services.persistence.base import ObjectStore

logger = logging.getLogger(__name__)


def _safe_key(path: str) -> PurePosixPath:
    key = PurePosixPath(path)
    if key.is_absolute() or ".." in key.parts or not key.parts:
        raise UploadError("invalid storage path")
    return key


class FileObjectStore(ObjectStore):
    """Documents bucket on local disk; links are signed tokens served by /files."""

    def __init__(self, root: str, public_base_url: str) -> None:
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*_safe_key(path).parts)

    def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        dest = self._resolve(path)
        if dest.exists():
            raise UploadError("object already exists")
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            # write then rename so readers never see a partial file
            tmp = dest.with_suffix(dest.suffix + ".part")
            with tmp.open("wb") as f:
                f.write(data)
            tmp.replace(dest)
        except OSError as e:
            logger.exception("storage write failed for %s", path)
            raise UploadError("storage write failed") from e

    def read(self, path: str) -> bytes:
        src = self._resolve(path)
        if not src.is_file():
            raise NotFoundError("File not found")
        return src.read_bytes()

    def create_signed_url(self, path: str, ttl_s: int) -> str:
        _safe_key(path)
        return f"{self.public_base_url}/files/{create_signed_path(path, ttl_s)}"


class MemoryObjectStore(ObjectStore):
    def __init__(self, public_base_url: str = "http://testserver") -> None:
        self.public_base_url = public_base_url.rstrip("/")
        self._lock = threading.Lock()
        self.objects: dict[str, tuple[bytes, str | None]] = {}

    def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        key = str(_safe_key(path))
        with self._lock:
            if key in self.objects:
                raise UploadError("object already exists")
            self.objects[key] = (data, content_type)

    def read(self, path: str) -> bytes:
        with self._lock:
            try:
                return self.objects[str(_safe_key(path))][0]
            except KeyError:
                raise NotFoundError("File not found") from None

    def create_signed_url(self, path: str, ttl_s: int) -> str:
        return f"{self.public_base_url}/files/{create_signed_path(str(_safe_key(path)), ttl_s)}"
