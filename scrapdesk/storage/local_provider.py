"""
Local filesystem storage provider for development and tests.
Files are served back through /files/local/{key}.
"""
import shutil
from typing import Optional, BinaryIO
from pathlib import Path
from urllib.parse import quote

from ..config import settings
from .provider import StorageProvider


class LocalStorageProvider(StorageProvider):
    name = "local"

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.local_storage_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Absolute path of ``key``; ValueError when it resolves outside the storage root."""
        root = self.base_dir.resolve()
        path = (root / key.replace("\\", "/").lstrip("/")).resolve()
        if not path.is_relative_to(root):
            raise ValueError(f"Storage key escapes the storage root: {key!r}")
        return path

    def _url(self, key: str) -> str:
        return f"{settings.public_base_url}/files/local/{quote(key.lstrip('/'))}"

    def upload(self, stream: BinaryIO, key: str, content_type: Optional[str] = None) -> dict:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            shutil.copyfileobj(stream, f)
        return {"url": self._url(key), "storage_key": key.lstrip("/"), "provider": self.name}

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        if path.is_file():
            path.unlink()
