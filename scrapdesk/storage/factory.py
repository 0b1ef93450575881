from ..config import settings
from .provider import StorageProvider
from .local_provider import LocalStorageProvider


def get_storage() -> StorageProvider:
    if settings.storage_provider == "blob":
        from .blob_provider import BlobStorageProvider

        return BlobStorageProvider()
    return LocalStorageProvider()
