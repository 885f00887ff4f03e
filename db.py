from sqlalchemy import func
from sqlmodel import create_engine, Session
from sqlmodel import SQLModel, select
import threading

from config import DATABASE_URL

# SQLite needs check_same_thread=False; Postgres does not
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# Application-level locks keyed by a simple name (e.g. one per route bucket)
locks = {}
locks_lock = threading.Lock()


def get_lock(name: str):
    with locks_lock:
        if name not in locks:
            locks[name] = threading.Lock()
        return locks[name]


engine = create_engine(DATABASE_URL, echo=False, connect_args=_connect_args)


def init_db():
    import models  # noqa: F401  registers the tables on SQLModel.metadata
    SQLModel.metadata.create_all(engine)


def get_session():
    return Session(engine)


def next_id(session, model) -> int:
    """Insertion index for a new ``model`` row: 0 for the first, never reused.

    Callers hold ``get_lock(f"{model.__tablename__}:index")`` until they commit.
    """
    last = session.exec(select(func.max(model.id))).one()
    return 0 if last is None else last + 1
