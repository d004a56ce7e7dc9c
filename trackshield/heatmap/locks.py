import logging
import threading
from contextlib import contextmanager
from typing import Iterator
from uuid import UUID

from sqlmodel import Session, text

logger = logging.getLogger(__name__)

# Fixed pool of locks. Users on the same stripe are serialized together.
LOCK_STRIPES = 64
_user_locks = tuple(threading.RLock() for _ in range(LOCK_STRIPES))


def get_user_lock(user_id: UUID) -> threading.RLock:
    return _user_locks[user_id.int % LOCK_STRIPES]


def advisory_lock_key(user_id: UUID) -> int:
    """Signed 64 bit key derived from the user id for pg_advisory_xact_lock."""
    value = user_id.int
    key = (value >> 64) ^ (value & ((1 << 64) - 1))
    if key >= 1 << 63:
        key -= 1 << 64
    return key


@contextmanager
def user_lock(session: Session, user_id: UUID) -> Iterator[None]:
    """
    Serialize heatmap writes of one user.

    Holds a process local lock and, on PostgreSQL, a transaction scoped
    advisory lock so workers in other processes are serialized as well. The
    advisory lock is released when the current transaction of `session` ends,
    callers must commit or roll back inside the block.
    """
    lock = get_user_lock(user_id)
    with lock:
        if session.get_bind().dialect.name == "postgresql":
            logger.debug("Acquiring advisory lock for user %s", user_id)
            session.exec(
                text("SELECT pg_advisory_xact_lock(:key)"),  # type: ignore
                params={"key": advisory_lock_key(user_id)},
            )
        yield
