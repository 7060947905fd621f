"""The signed-in user's session, passed explicitly to workflow components."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

ADMIN_ROLE = "ADMIN"


@dataclass
class SessionData:
    token: str
    username: str
    email: str
    role: str


class CurrentSession:
    """Holds the login result from sign-in until sign-out.

    Components only read from it; ``login`` and ``logout`` are called by
    whatever owns the authentication flow.
    """

    def __init__(self, data: Optional[SessionData] = None) -> None:
        self._data = data

    @classmethod
    def for_email(cls, email: str, *, token: str = "", role: str = "USER") -> "CurrentSession":
        return cls(SessionData(token=token, username=email.split("@")[0], email=email, role=role))

    def login(self, *, token: str, username: str, email: str, role: str) -> None:
        self._data = SessionData(token=token, username=username, email=email, role=role)
        logger.info(f"Session started for {username}")

    def logout(self) -> None:
        if self._data is not None:
            logger.info(f"Session ended for {self._data.username}")
        self._data = None

    @property
    def is_authenticated(self) -> bool:
        return self._data is not None

    @property
    def token(self) -> Optional[str]:
        return self._data.token if self._data else None

    @property
    def email(self) -> Optional[str]:
        return self._data.email if self._data else None

    @property
    def username(self) -> Optional[str]:
        return self._data.username if self._data else None

    @property
    def is_admin(self) -> bool:
        return self._data is not None and self._data.role == ADMIN_ROLE
