from __future__ import annotations
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    admin = "ADMIN"
    user = "USER"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["UserRole"]:
        if not raw:
            return None
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return None


class Caller(BaseModel):
    id: str = "anonymous"
    role: UserRole
