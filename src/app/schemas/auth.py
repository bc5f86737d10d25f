from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from src.app.domain.models import UserRole


class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
