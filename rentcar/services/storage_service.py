import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Dict, Protocol, Tuple

from jose import jwt, JWTError

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    def put_object(self, bucket: str, key: str, data: bytes, content_type: str = ...) -> None: ...

    def presigned_url(self, bucket: str, key: str, ttl_seconds: int) -> str: ...


def sign_download_token(secret_key: str, algorithm: str, bucket: str, key: str, ttl_seconds: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
    return jwt.encode({"bucket": bucket, "key": key, "exp": expire}, secret_key, algorithm=algorithm)


def verify_download_token(secret_key: str, algorithm: str, token: str) -> Tuple[str, str]:
    """Return ``(bucket, key)`` of a valid token; raises ``ValueError`` otherwise."""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError as e:
        raise ValueError(f"Invalid download token: {e}")
    return payload["bucket"], payload["key"]


class LocalObjectStorage:
    """Stores objects under ``<root>/<bucket>/<key>`` and hands out signed URLs."""

    def __init__(self, root: str, base_url: str, secret_key: str, algorithm: str = "HS256"):
        self.root = root
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key
        self.algorithm = algorithm

    def _path(self, bucket: str, key: str) -> str:
        path = os.path.normpath(os.path.join(self.root, bucket, key))
        if not path.startswith(os.path.normpath(os.path.join(self.root, bucket)) + os.sep):
            raise ValueError(f"Object key escapes bucket: {key}")
        return path

    def put_object(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        path = self._path(bucket, key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as buffer:
            buffer.write(data)
        logger.info("Stored object %s/%s (%d bytes, %s)", bucket, key, len(data), content_type)

    def read_object(self, bucket: str, key: str) -> bytes:
        with open(self._path(bucket, key), "rb") as f:
            return f.read()

    def presigned_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        token = sign_download_token(self.secret_key, self.algorithm, bucket, key, ttl_seconds)
        return f"{self.base_url}/files/{bucket}/{key}?token={token}"


class InMemoryObjectStorage:
    def __init__(self):
        self.objects: Dict[Tuple[str, str], Tuple[bytes, str]] = {}

    def put_object(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        self.objects[(bucket, key)] = (data, content_type)

    def presigned_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        return f"memory://{bucket}/{key}?ttl={ttl_seconds}"
