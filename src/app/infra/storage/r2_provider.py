# src/app/infra/storage/r2_provider.py
"""
Cloudflare R2 image storage. R2 is S3-compatible, so boto3 talks to it
through a custom endpoint.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.app.domain.errors import StorageError
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class R2StorageProvider(StorageProvider):
    def __init__(
        self,
        account_id: Optional[str],
        access_key_id: Optional[str],
        secret_access_key: Optional[str],
        bucket_name: Optional[str],
        public_base_url: Optional[str] = None,
        client=None,
    ):
        if not all([account_id, access_key_id, secret_access_key, bucket_name]):
            raise StorageError(
                "R2 is not configured; set R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, "
                "R2_SECRET_ACCESS_KEY, R2_BUCKET_NAME"
            )

        self.bucket_name = bucket_name
        self.endpoint_url = f"https://{account_id}.r2.cloudflarestorage.com"
        self.public_base_url = (public_base_url or f"{self.endpoint_url}/{bucket_name}").rstrip("/")

        self._client = client or boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
            ),
            region_name="auto",  # R2 uses 'auto' as region
        )

        logger.info("storage.r2_ready bucket=%s", self.bucket_name)

    def generate_signed_put_url(
        self,
        object_key: str,
        content_type: str,
        expires_seconds: int = 600,
    ) -> tuple[str, datetime]:
        try:
            url = self._client.generate_presigned_url(
                ClientMethod="put_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": object_key,
                    "ContentType": content_type,
                },
                ExpiresIn=expires_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("storage.sign_failed key=%s error=%s", object_key, e)
            raise StorageError(f"Could not sign upload for {object_key}: {e}") from e

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_seconds)
        logger.debug("storage.signed_put key=%s content_type=%s", object_key, content_type)
        return url, expires_at

    def public_url(self, object_key: str) -> str:
        return f"{self.public_base_url}/{object_key}"

    def delete_object(self, object_key: str) -> bool:
        try:
            self._client.delete_object(Bucket=self.bucket_name, Key=object_key)
        except ClientError as e:
            logger.error("storage.delete_failed key=%s error=%s", object_key, e)
            return False
        logger.info("storage.deleted key=%s", object_key)
        return True
