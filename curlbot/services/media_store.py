"""Object storage for uploaded consultation media.

Objects live as files below ``MEDIA_STORAGE_DIR``; a key such as
``whatsapp:+15550001111/1700000000000-0.jpeg`` maps to the same relative
path. Listing by prefix is the only way media is discovered.
"""

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from curlbot.config import settings
from curlbot.logging_config import get_logger

logger = get_logger("media_store")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class StoredObject:
    key: str
    size: int
    content_type: str
    uploaded: float
    body: Optional[bytes] = None


def guess_content_type(key: str) -> str:
    content_type, _ = mimetypes.guess_type(key, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


class MediaStore:
    def __init__(self, root: Optional[str | Path] = None):
        self.root = Path(root or settings.media_storage_dir).resolve()

    def _path_for(self, key: str) -> Path:
        normalized = (key or "").strip().lstrip("/").replace("\\", "/")
        if not normalized:
            raise ValueError("empty media key")
        target = (self.root / normalized).resolve()
        if self.root not in target.parents:
            raise ValueError(f"media key escapes storage root: {key!r}")
        return target

    def _key_for(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def _describe(self, path: Path, *, with_body: bool = False) -> StoredObject:
        stat = path.stat()
        key = self._key_for(path)
        return StoredObject(
            key=key,
            size=stat.st_size,
            content_type=guess_content_type(key),
            uploaded=stat.st_mtime,
            body=path.read_bytes() if with_body else None,
        )

    def put(self, key: str, data: bytes) -> StoredObject:
        target = self._path_for(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug(f"Stored media object {key} ({len(data)} bytes)")
        return self._describe(target)

    def get(self, key: str) -> Optional[StoredObject]:
        try:
            target = self._path_for(key)
        except ValueError:
            return None
        if not target.is_file():
            return None
        return self._describe(target, with_body=True)

    def list_prefix(self, prefix: str) -> list[StoredObject]:
        """List objects whose key starts with ``prefix``, ordered by key."""
        if not self.root.exists():
            return []
        # Only walk the directory that can contain matching keys.
        directory = prefix.rsplit("/", 1)[0] if "/" in prefix else ""
        try:
            base = self._path_for(directory) if directory else self.root
        except ValueError:
            return []
        if not base.is_dir():
            return []
        objects = [
            self._describe(path)
            for path in base.rglob("*")
            if path.is_file() and self._key_for(path).startswith(prefix)
        ]
        return sorted(objects, key=lambda obj: obj.key)

    def delete(self, key: str) -> bool:
        try:
            target = self._path_for(key)
        except ValueError:
            return False
        if not target.is_file():
            return False
        target.unlink()
        return True

    def delete_prefix(self, prefix: str) -> int:
        deleted = 0
        for obj in self.list_prefix(prefix):
            try:
                if self.delete(obj.key):
                    deleted += 1
            except OSError as exc:
                logger.error(f"Media delete failed for {obj.key}: {exc}")
        return deleted


_media_store: Optional[MediaStore] = None


def get_media_store() -> MediaStore:
    global _media_store
    if _media_store is None:
        _media_store = MediaStore()
    return _media_store
