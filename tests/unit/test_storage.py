from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

from src.app.domain.errors import StorageError
from src.app.infra.storage.r2_provider import R2StorageProvider


class StubS3:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.presign_calls: list[dict] = []
        self.deleted: list[str] = []

    def _error(self, operation: str) -> ClientError:
        return ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation)

    def generate_presigned_url(self, ClientMethod: str, Params: dict, ExpiresIn: int) -> str:
        if self.fail:
            raise self._error("PutObject")
        self.presign_calls.append({"method": ClientMethod, "params": Params, "expires": ExpiresIn})
        return f"https://signed.example/{Params['Key']}"

    def delete_object(self, Bucket: str, Key: str) -> dict:
        if self.fail:
            raise self._error("DeleteObject")
        self.deleted.append(Key)
        return {}


def make_provider(client: StubS3, public_base_url: str | None = None) -> R2StorageProvider:
    return R2StorageProvider(
        account_id="acct",
        access_key_id="key",
        secret_access_key="secret",
        bucket_name="images",
        public_base_url=public_base_url,
        client=client,
    )


class TestConfiguration:
    def test_missing_settings(self) -> None:
        with pytest.raises(StorageError):
            R2StorageProvider(None, "key", "secret", "images")

    def test_public_url_defaults_to_bucket_endpoint(self) -> None:
        provider = make_provider(StubS3())
        assert provider.public_url("a.png") == "https://acct.r2.cloudflarestorage.com/images/a.png"

    def test_custom_public_url(self) -> None:
        provider = make_provider(StubS3(), public_base_url="https://cdn.example/")
        assert provider.public_url("a.png") == "https://cdn.example/a.png"


class TestSignedUploads:
    def test_presigned_put(self) -> None:
        client = StubS3()
        before = datetime.now(timezone.utc)

        url, expires_at = make_provider(client).generate_signed_put_url("recipes/x.png", "image/png", 600)

        assert url == "https://signed.example/recipes/x.png"
        assert client.presign_calls[0]["params"]["ContentType"] == "image/png"
        assert (expires_at - before).total_seconds() >= 600

    def test_client_error(self) -> None:
        with pytest.raises(StorageError):
            make_provider(StubS3(fail=True)).generate_signed_put_url("k", "image/png")

    def test_object_key_layout(self) -> None:
        key = make_provider(StubS3()).generate_object_key("blog", "my photo.png")
        assert re.fullmatch(r"blog/\d{4}/\d{2}/[0-9a-f]{8}_my_photo\.png", key)


class TestDelete:
    def test_delete(self) -> None:
        client = StubS3()
        assert make_provider(client).delete_object("blog/a.png") is True
        assert client.deleted == ["blog/a.png"]

    def test_delete_failure(self) -> None:
        assert make_provider(StubS3(fail=True)).delete_object("blog/a.png") is False
