from __future__ import annotations

import logging
from typing import Optional

from supabase import Client

from src.app.domain.models import UserRole
from src.app.infra.db.base import IdentityProvider
from src.app.schemas.auth import CurrentUser

logger = logging.getLogger(__name__)


def _metadata(user: object, attr: str) -> dict:
    meta = getattr(user, attr, None) or {}
    return meta if isinstance(meta, dict) else {}


class SupabaseIdentityProvider(IdentityProvider):
    """
    Validates Supabase access tokens against GoTrue.
    The role comes from app_metadata, which only the service role can write.
    """

    def __init__(self, client: Client):
        self._client = client

    def current_user(self, token: Optional[str]) -> Optional[CurrentUser]:
        if not token:
            return None
        try:
            res = self._client.auth.get_user(token)
        except Exception as exc:
            # expired and malformed tokens both surface as auth errors
            logger.info("identity.token_rejected error=%s", exc)
            return None

        user = getattr(res, "user", None)
        if not user:
            return None

        role = str(_metadata(user, "app_metadata").get("role") or "").upper()
        return CurrentUser(
            id=str(user.id),
            email=user.email,
            name=_metadata(user, "user_metadata").get("name"),
            role=UserRole.ADMIN if role == UserRole.ADMIN.value else UserRole.USER,
        )
