"""Unit tests for the storage adapters."""

import hashlib
from datetime import timedelta
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest

from src.core.errors import NotFoundError
from src.infrastructure.storage.local_storage import LocalStorageService
from src.infrastructure.storage.minio_storage import MinIOStorageService


@pytest.fixture
def local(tmp_path) -> LocalStorageService:
    return LocalStorageService(root=str(tmp_path), signing_key="test-key", base_url="http://files.test")


class TestLocalStorage:
    """Tests for LocalStorageService."""

    def test_upload_then_download(self, local, tmp_path) -> None:
        ref = local.upload(b"%PDF-1.4 data", "certificates/o-1/a-1.pdf")

        assert (tmp_path / "certificates" / "o-1" / "a-1.pdf").read_bytes() == b"%PDF-1.4 data"
        assert ref.key == "certificates/o-1/a-1.pdf"
        assert ref.size_bytes == 13
        assert ref.sha256 == hashlib.sha256(b"%PDF-1.4 data").hexdigest()
        assert local.download(ref.key) == b"%PDF-1.4 data"

    def test_missing_file(self, local) -> None:
        with pytest.raises(NotFoundError):
            local.download("certificates/none.pdf")

    def test_key_cannot_escape_root(self, local) -> None:
        with pytest.raises(ValueError):
            local.download("../../etc/passwd")

    def test_signed_url_verifies(self, local) -> None:
        url = local.get_signed_url("certificates/o-1/a-1.pdf", expires_seconds=60)
        query = parse_qs(urlparse(url).query)
        expires = int(query["expires"][0])
        signature = query["signature"][0]

        assert url.startswith("http://files.test/api/v1/files/certificates/o-1/a-1.pdf?")
        assert local.verify_signature("certificates/o-1/a-1.pdf", expires, signature) is True

    def test_tampered_key_is_rejected(self, local) -> None:
        url = local.get_signed_url("certificates/o-1/a-1.pdf")
        query = parse_qs(urlparse(url).query)

        assert local.verify_signature(
            "certificates/o-2/a-9.pdf", int(query["expires"][0]), query["signature"][0]
        ) is False

    def test_expired_signature_is_rejected(self, local) -> None:
        signature = local.signature("k.pdf", 1000)

        assert local.verify_signature("k.pdf", 1000, signature, now=999) is True
        assert local.verify_signature("k.pdf", 1000, signature, now=1001) is False


class TestMinIOStorage:
    """Tests for MinIOStorageService with a mocked client."""

    def test_upload_creates_bucket_once(self) -> None:
        client = MagicMock()
        client.bucket_exists.return_value = False
        client.presigned_get_object.return_value = "https://minio.test/signed"
        storage = MinIOStorageService("minio:9000", "key", "secret", "certs", client=client)

        ref = storage.upload(b"pdf-bytes", "certificates/a.pdf")
        storage.upload(b"pdf-bytes", "certificates/b.pdf")

        client.make_bucket.assert_called_once_with("certs")
        assert client.put_object.call_count == 2
        args, kwargs = client.put_object.call_args
        assert args[:2] == ("certs", "certificates/b.pdf")
        assert kwargs["length"] == 9
        assert kwargs["content_type"] == "application/pdf"
        assert ref.url == "https://minio.test/signed"
        assert ref.bucket == "certs"

    def test_signed_url_uses_presign(self) -> None:
        client = MagicMock()
        client.presigned_get_object.return_value = "https://minio.test/x"
        storage = MinIOStorageService("minio:9000", "key", "secret", "certs", client=client)

        assert storage.get_signed_url("certificates/a.pdf", 120) == "https://minio.test/x"
        client.presigned_get_object.assert_called_once_with(
            "certs", "certificates/a.pdf", expires=timedelta(seconds=120)
        )

    def test_download_releases_connection(self) -> None:
        client = MagicMock()
        response = client.get_object.return_value
        response.read.return_value = b"content"
        storage = MinIOStorageService("minio:9000", "key", "secret", "certs", client=client)

        assert storage.download("certificates/a.pdf") == b"content"
        response.close.assert_called_once()
        response.release_conn.assert_called_once()
