import mimetypes

from fastapi import APIRouter, Depends, Response

from apps.api.deps import get_platform
from core.security import read_signed_path
from services.persistence.platform import DataPlatform

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/{token}")
def download(token: str, platform: DataPlatform = Depends(get_platform)):  # noqa: B008
    """Serve one stored object to whoever holds an unexpired signed link."""
    path = read_signed_path(token)
    data = platform.objects.read(path)
    ctype = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=ctype)
