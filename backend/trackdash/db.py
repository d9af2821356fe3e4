import threading
from functools import wraps
from typing import Any, Awaitable, Callable, Generator, TypeVar

from fastapi.concurrency import run_in_threadpool
from sqlmodel import SQLModel, create_engine, Session

from .config import settings


T = TypeVar("T")


# Configurar engine con soporte para SQLite en tests (hilos)
if settings.database_url.startswith("sqlite"):
    engine = create_engine(
        settings.database_url,
        echo=settings.debug,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(settings.database_url, echo=settings.debug)


def init_db():
    # Importar modelos para asegurar que todas las tablas estén registradas en el metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    session = Session(engine)
    try:
        yield session
    finally:
        session.close()


async def run_in_session(session: Session, fn: Callable[..., T], *args: Any) -> T:
    """Run a blocking query in the threadpool, one at a time per session.

    Loaders of one request share its session, which is not thread-safe.
    """
    lock = session.info.setdefault("query_lock", threading.Lock())

    def _locked() -> T:
        with lock:
            return fn(*args)

    return await run_in_threadpool(_locked)


def threaded_batch(fn: Callable[[Session, Any], T]) -> Callable[[Session, Any], Awaitable[T]]:
    """Turn a blocking ``fn(session, keys)`` batch function into a coroutine."""

    @wraps(fn)
    async def batch(session: Session, keys: Any) -> T:
        return await run_in_session(session, fn, session, keys)

    return batch
