"""
Transaction boundary for the receiving engine.

All writes of one goods receipt happen in one UnitOfWork: either commit()
makes all of them visible or none of them survive. Store exceptions are
translated into the engine's taxonomy at this boundary.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from fulfillment.app.core.config import DB_LOCK_TIMEOUT_MS
from fulfillment.services.errors import Contention, StoreFailure

logger = logging.getLogger(__name__)


UNIQUE_VIOLATION = "23505"


def is_unique_violation(e: IntegrityError) -> bool:
    orig = e.orig
    # psycopg 3 exposes sqlstate, psycopg2 pgcode
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


def _constraint_message(e: IntegrityError) -> str:
    return str(e.orig).splitlines()[0] if e.orig is not None else "integrity error"


@contextmanager
def translate_store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except StaleDataError as e:
        raise Contention(f"{action}: a concurrent update changed the same rows, retry") from e
    except IntegrityError as e:
        if is_unique_violation(e):
            # receipt number or (product, location) inserted concurrently
            raise Contention(f"{action}: conflicting concurrent write, retry") from e
        # foreign key or CHECK: the same write fails the same way every time
        raise StoreFailure(
            f"{action}: the store refused the write ({_constraint_message(e)})", retryable=False
        ) from e
    except OperationalError as e:
        # lock timeout, serialization failure, "database is locked"
        raise Contention(f"{action}: the store did not grant the lock in time, retry") from e
    except SQLAlchemyError as e:
        raise StoreFailure(f"{action}: the store could not complete the transaction") from e


class SqlAlchemyUnitOfWork:
    def __init__(self, session_factory: sessionmaker, lock_timeout_ms: int = DB_LOCK_TIMEOUT_MS) -> None:
        self._session_factory = session_factory
        self._lock_timeout_ms = lock_timeout_ms
        self.session: Session | None = None
        self._committed = False

    def begin(self) -> Session:
        self.session = self._session_factory()
        self._committed = False
        bind = self.session.get_bind()
        if bind.dialect.name == "postgresql":
            # bounded wait on row locks; exceeded -> OperationalError -> Contention
            self.session.execute(text(f"SET LOCAL lock_timeout = '{int(self._lock_timeout_ms)}ms'"))
        return self.session

    def commit(self) -> None:
        with translate_store_errors("commit"):
            self.session.commit()
        self._committed = True

    def rollback(self) -> None:
        if self.session is not None:
            self.session.rollback()

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if not self._committed:
                self.rollback()
                if exc_type is not None:
                    logger.debug("unit of work rolled back: %s", exc_type.__name__)
        finally:
            self.close()
