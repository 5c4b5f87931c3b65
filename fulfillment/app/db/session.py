from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from fulfillment.app.core.config import DATABASE_URL, DB_LOCK_TIMEOUT_MS


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # pysqlite takes the busy timeout in seconds
        return create_engine(url, connect_args={"timeout": DB_LOCK_TIMEOUT_MS / 1000})
    return create_engine(url, pool_pre_ping=True)


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, expire_on_commit=False)


engine = build_engine(DATABASE_URL)
SessionLocal = build_session_factory(engine)
