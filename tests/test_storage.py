"""
Tests for the image object stores
"""

import pytest
from botocore.exceptions import ClientError

from housekeeping.api import deps
from housekeeping.core.errors import UpstreamError
from housekeeping.services.storage import LocalObjectStore, S3ObjectStore, object_key


class FakeS3Client:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def put_object(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.calls.append(kwargs)


class FakeSession:
    """Stands in for aioboto3.Session, recording client settings"""

    def __init__(self, client: FakeS3Client):
        self._client = client
        self.client_kwargs = None

    def client(self, service_name, **kwargs):
        assert service_name == "s3"
        self.client_kwargs = kwargs
        return self._client


def test_object_key_keeps_extension():
    assert object_key("image/png").startswith("tasks/")
    assert object_key("image/png").endswith(".png")
    assert object_key("application/x-unknown", "Foto.HEIC").endswith(".heic")
    assert object_key("image/jpeg", prefix="/prod/").startswith("prod/tasks/")


class TestLocalObjectStore:
    """Blobs written under the upload directory"""

    @pytest.mark.asyncio
    async def test_put_writes_file(self, tmp_path):
        store = LocalObjectStore(str(tmp_path), "http://api.test/")

        url = await store.put(b"\x89PNG", "image/png")

        assert url.startswith("http://api.test/uploads/tasks/")
        key = url.split("/uploads/")[1]
        assert (tmp_path / key).read_bytes() == b"\x89PNG"


class TestS3ObjectStore:
    """Public-read uploads to a bucket"""

    @pytest.mark.asyncio
    async def test_put_uploads_public_object(self):
        client = FakeS3Client()
        session = FakeSession(client)
        store = S3ObjectStore(
            bucket="housekeeping",
            public_base_url="https://cdn.example.com/",
            region="nyc3",
            endpoint_url="https://nyc3.digitaloceanspaces.com",
            access_key_id="key",
            secret_access_key="secret",
            prefix="prod",
            session=session,
        )

        url = await store.put(b"jpeg-bytes", "image/jpeg", "101.jpg")

        assert len(client.calls) == 1
        call = client.calls[0]
        assert call["Bucket"] == "housekeeping"
        assert call["Body"] == b"jpeg-bytes"
        assert call["ContentType"] == "image/jpeg"
        assert call["ACL"] == "public-read"
        assert call["Key"].startswith("prod/tasks/")
        assert url == f"https://cdn.example.com/{call['Key']}"
        assert session.client_kwargs["endpoint_url"] == "https://nyc3.digitaloceanspaces.com"
        assert session.client_kwargs["aws_access_key_id"] == "key"

    @pytest.mark.asyncio
    async def test_upload_failure_is_upstream_error(self):
        error = ClientError({"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject")
        store = S3ObjectStore("housekeeping", "https://cdn.example.com", session=FakeSession(FakeS3Client(error)))

        with pytest.raises(UpstreamError) as exc_info:
            await store.put(b"jpeg-bytes", "image/jpeg")
        assert exc_info.value.message == "No se pudo guardar la imagen"


class TestBackendSelection:
    """STORAGE_BACKEND picks the store handed to the routes"""

    def test_local_by_default(self):
        assert isinstance(deps.get_object_store(), LocalObjectStore)

    def test_s3_backend(self, monkeypatch):
        monkeypatch.setattr(deps.settings, "STORAGE_BACKEND", "s3")
        monkeypatch.setattr(deps.settings, "S3_BUCKET", "housekeeping")
        monkeypatch.setattr(deps.settings, "S3_PUBLIC_BASE_URL", "https://cdn.example.com")
        monkeypatch.setattr(deps.settings, "S3_PREFIX", "prod")

        store = deps.get_object_store()

        assert isinstance(store, S3ObjectStore)
        assert store.bucket == "housekeeping"
        assert store.public_url("prod/tasks/a.jpg") == "https://cdn.example.com/prod/tasks/a.jpg"

    def test_s3_backend_needs_bucket(self, monkeypatch):
        monkeypatch.setattr(deps.settings, "STORAGE_BACKEND", "s3")
        monkeypatch.setattr(deps.settings, "S3_BUCKET", None)

        with pytest.raises(RuntimeError):
            deps.get_object_store()
