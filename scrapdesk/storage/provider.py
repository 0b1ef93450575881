from typing import BinaryIO, Optional


class StorageProvider:
    """Binary storage backend. ``upload`` returns {url, storage_key, provider}."""

    name = "base"

    def upload(self, stream: BinaryIO, key: str, content_type: Optional[str] = None) -> dict:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError
