"""
Adapter: MinIO Storage Service

Implementação concreta do contrato IStorageService
usando MinIO (compatível com API S3).
"""

import hashlib
import io
import logging
from datetime import timedelta

from minio import Minio
from minio.error import S3Error

from src.core.errors import DependencyFailure, NotFoundError
from src.core.interfaces.storage_service import IStorageService, StorageRef

logger = logging.getLogger(__name__)


class MinIOStorageService(IStorageService):
    """
    Storage de artefatos usando MinIO.

    Em produção, trocar por S3 real sem mudar nenhum
    outro código, só muda as credenciais de conexão.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        secure: bool = False,
        client: Minio | None = None,
    ):
        self._bucket = bucket
        self._client = client or Minio(endpoint, access_key=access_key, secret_key=secret_key, secure=secure)
        self._bucket_checked = False

    def _ensure_bucket(self) -> None:
        if self._bucket_checked:
            return
        if not self._client.bucket_exists(self._bucket):
            self._client.make_bucket(self._bucket)
            logger.info(f"Created bucket {self._bucket}")
        self._bucket_checked = True

    def upload(self, data: bytes, key: str, content_type: str = "application/pdf") -> StorageRef:
        try:
            self._ensure_bucket()
            self._client.put_object(
                self._bucket, key, io.BytesIO(data), length=len(data), content_type=content_type
            )
        except S3Error as e:
            raise DependencyFailure(f"MinIO upload failed for {key}: {e}") from e

        logger.info(f"Uploaded {key} to {self._bucket} ({len(data)} bytes)")
        return StorageRef(
            bucket=self._bucket,
            key=key,
            size_bytes=len(data),
            sha256=hashlib.sha256(data).hexdigest(),
            content_type=content_type,
            url=self.get_signed_url(key),
        )

    def download(self, key: str) -> bytes:
        response = None
        try:
            response = self._client.get_object(self._bucket, key)
            return response.read()
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                raise NotFoundError(f"File not found: {key}") from e
            raise DependencyFailure(f"MinIO download failed for {key}: {e}") from e
        finally:
            if response is not None:
                response.close()
                response.release_conn()

    def get_signed_url(self, key: str, expires_seconds: int = 3600) -> str:
        try:
            return self._client.presigned_get_object(self._bucket, key, expires=timedelta(seconds=expires_seconds))
        except S3Error as e:
            raise DependencyFailure(f"Could not presign {key}: {e}") from e
