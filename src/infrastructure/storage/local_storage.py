"""
Adapter: Local Filesystem Storage

Implementação do contrato IStorageService gravando em disco.
Used in development and tests; URLs are signed with HMAC-SHA256 and
verified by the API before the file is served.
"""

import hashlib
import hmac
import logging
import time
from pathlib import Path
from urllib.parse import quote

from src.core.errors import DependencyFailure, NotFoundError
from src.core.interfaces.storage_service import IStorageService, StorageRef

logger = logging.getLogger(__name__)


class LocalStorageService(IStorageService):
    """
    Storage de artefatos no filesystem local.

    Keys are relative paths under `root`; anything escaping the root is rejected.
    """

    bucket = "local"

    def __init__(self, root: str, signing_key: str, base_url: str = "http://localhost:8000"):
        self._root = Path(root).resolve()
        self._signing_key = signing_key.encode("utf-8")
        self._base_url = base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise ValueError(f"Storage key escapes root: {key}")
        return path

    def upload(self, data: bytes, key: str, content_type: str = "application/pdf") -> StorageRef:
        try:
            path = self._path(key)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise DependencyFailure(f"Failed to store {key}: {e}") from e

        logger.info(f"Stored {key} ({len(data)} bytes)")
        return StorageRef(
            bucket=self.bucket,
            key=key,
            size_bytes=len(data),
            sha256=hashlib.sha256(data).hexdigest(),
            content_type=content_type,
            url=self.get_signed_url(key),
        )

    def download(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError(f"File not found: {key}")
        return path.read_bytes()

    def signature(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode("utf-8")
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()

    def get_signed_url(self, key: str, expires_seconds: int = 3600) -> str:
        expires = int(time.time()) + expires_seconds
        return (
            f"{self._base_url}/api/v1/files/{quote(key)}"
            f"?expires={expires}&signature={self.signature(key, expires)}"
        )

    def verify_signature(self, key: str, expires: int, signature: str, now: float | None = None) -> bool:
        """True when the signature matches and the URL has not expired."""
        if (now if now is not None else time.time()) > expires:
            return False
        return hmac.compare_digest(self.signature(key, expires), signature)
