from __future__ import annotations

from typing import Generator

from fastapi import Header, HTTPException
from sqlalchemy.orm import sessionmaker

from fulfillment.app.db.session import SessionLocal
from fulfillment.services.identity import Identity, resolve_identity
from fulfillment.services.notifications import LoggingNotifier, Notifier


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    return SessionLocal


class HeaderIdentityContext:
    def __init__(self, user_id: str | None, organization_id: str | None) -> None:
        self._user_id = user_id
        self._organization_id = organization_id

    @staticmethod
    def _parse(value: str | None, header: str) -> int:
        if not value or not value.strip():
            raise HTTPException(status_code=400, detail=f"Missing {header} header")
        try:
            return int(value.strip())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid {header} header")

    def current_user(self) -> int:
        return self._parse(self._user_id, "X-User-Id")

    def current_tenant(self) -> int:
        return self._parse(self._organization_id, "X-Organization-Id")


def get_identity(
    user_id: str | None = Header(default=None, alias="X-User-Id"),
    organization_id: str | None = Header(default=None, alias="X-Organization-Id"),
) -> Identity:
    return resolve_identity(HeaderIdentityContext(user_id, organization_id))


_notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    return _notifier
