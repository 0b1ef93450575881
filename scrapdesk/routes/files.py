from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from ..auth.security import get_current_user
from ..config import settings
from ..models.enums import Role
from ..models.models import User
from ..services.invoices import purchase_documents_folder
from ..storage.local_provider import LocalStorageProvider


router = APIRouter(prefix="/files", tags=["files"])


def _file_not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="File not found")


@router.get("/local/{key:path}")
def download_local(key: str, user: User = Depends(get_current_user)):
    """Serve files written by the local storage backend (development only).

    Super admins may read any stored file; everyone else only the purchase
    documents of their own organization.
    """
    if settings.storage_provider != "local":
        raise HTTPException(status_code=404, detail="Not found")
    storage = LocalStorageProvider()
    try:
        path = storage.path_for(key)
    except ValueError:
        raise _file_not_found()
    if user.role != Role.SUPER_ADMIN.value:
        if not user.organization_id:
            raise _file_not_found()
        allowed = storage.path_for(purchase_documents_folder(user.organization_id))
        if not path.is_relative_to(allowed):
            raise _file_not_found()
    if not path.is_file():
        raise _file_not_found()
    return FileResponse(str(path))
