from . import enums, models
from .locks import SeasonBusyError, SeasonLockManager, advisory_lock_key
from .session import get_engine, get_session, get_session_factory, get_sessionmaker, init_db

__all__ = [
    "SeasonBusyError",
    "SeasonLockManager",
    "advisory_lock_key",
    "enums",
    "get_engine",
    "get_session",
    "get_session_factory",
    "get_sessionmaker",
    "init_db",
    "models",
]
