# agent_gateway/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import os

_engine = None
_SessionLocal = None


def get_engine():
    global _engine
    if _engine is None:
        db_url = os.environ.get("DATABASE_URL")
        if not db_url:
            raise RuntimeError("DATABASE_URL not set")
        connect_args = {}
        if db_url.startswith("sqlite"):
            # 工具调用在线程池中执行，sqlite 连接需跨线程
            connect_args = {"check_same_thread": False}
        _engine = create_engine(db_url, connect_args=connect_args)
    return _engine


def get_session_factory():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=get_engine()
        )
    return _SessionLocal


def get_session():
    return get_session_factory()()


def reset_engine():
    '''
    Dispose the cached engine so the next get_engine() call re-reads DATABASE_URL.
    Used by tests and by run.py after it pins the database path.
    '''
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
