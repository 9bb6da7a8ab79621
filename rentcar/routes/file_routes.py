from fastapi import APIRouter, Query, Request
from fastapi.responses import Response

from rentcar.config import ALGORITHM, SECRET_KEY
from rentcar.responses.error import forbidden_error, not_found_error
from rentcar.services.storage_service import verify_download_token

router = APIRouter(prefix="/files", tags=["Files"])


@router.get("/{bucket}/{key}")
def download_file(bucket: str, key: str, request: Request, token: str = Query(...)):
    """Serve a stored object to the holder of a presigned URL."""
    try:
        signed_bucket, signed_key = verify_download_token(SECRET_KEY, ALGORITHM, token)
    except ValueError as e:
        return forbidden_error(str(e))
    if (signed_bucket, signed_key) != (bucket, key):
        return forbidden_error("Token does not match the requested file.")

    try:
        content = request.app.state.storage.read_object(bucket, key)
    except (FileNotFoundError, ValueError):
        return not_found_error(f"File {bucket}/{key} not found.")
    return Response(content=content, media_type="text/plain")
