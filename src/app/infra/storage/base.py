# src/app/infra/storage/base.py
"""
Abstract interface for image storage.
Uploads go straight from the browser to the bucket through a signed PUT URL;
the API only signs and later serves the public URL.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from uuid import uuid4

_UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")


class StorageProvider(ABC):
    """
    Implementations:
    - R2StorageProvider: Cloudflare R2 (S3-compatible)
    """

    @abstractmethod
    def generate_signed_put_url(
        self,
        object_key: str,
        content_type: str,
        expires_seconds: int = 600,
    ) -> tuple[str, datetime]:
        """
        Args:
            object_key: Where the object will be stored
            content_type: MIME type the client must send
            expires_seconds: URL validity in seconds

        Returns:
            Tuple of (signed_url, expiration_datetime)
        """
        pass

    @abstractmethod
    def public_url(self, object_key: str) -> str:
        """URL under which the uploaded object is served."""
        pass

    @abstractmethod
    def delete_object(self, object_key: str) -> bool:
        pass

    def generate_object_key(self, folder: str, filename: str) -> str:
        """
        Format: {folder}/{YYYY}/{MM}/{uuid8}_{filename}
        """
        now = datetime.now(timezone.utc)
        safe_filename = _UNSAFE_FILENAME_RE.sub("_", filename)
        return f"{folder}/{now:%Y}/{now:%m}/{uuid4().hex[:8]}_{safe_filename}"
