from __future__ import annotations

from typing import Mapping, Optional

from src.app.infra.db.base import IdentityProvider
from src.app.schemas.auth import CurrentUser


class StaticIdentityProvider(IdentityProvider):
    """Fixed token -> user table. With no tokens every caller is anonymous."""

    def __init__(self, users: Optional[Mapping[str, CurrentUser]] = None):
        self._users = dict(users or {})

    def current_user(self, token: Optional[str]) -> Optional[CurrentUser]:
        if not token:
            return None
        return self._users.get(token)
