from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Callable, Dict, List, Optional, TypeVar

from mysql.connector import errorcode
from mysql.connector.errors import DatabaseError

from ..core.constants import LEDGER_MAX_ATTEMPTS
from ..core.exceptions import TransientConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRNOS = frozenset({errorcode.ER_LOCK_DEADLOCK, errorcode.ER_LOCK_WAIT_TIMEOUT})


@contextmanager
def db_cursor(conn_factory, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def run_in_transaction(
    conn_factory,
    work: Callable[[Any], T],
    *,
    max_attempts: int = LEDGER_MAX_ATTEMPTS,
) -> T:
    """Run ``work(cursor)`` inside one transaction, retrying lock conflicts.

    Deadlocks and lock-wait timeouts roll the whole unit back, so re-running
    it from the start is safe. Any other error propagates unchanged.
    """

    attempts = max(int(max_attempts), 1)
    for attempt in range(1, attempts + 1):
        try:
            with db_cursor(conn_factory) as (_, cur):
                return work(cur)
        except DatabaseError as exc:
            if exc.errno not in RETRYABLE_ERRNOS:
                raise
            logger.warning("lock conflict (errno=%s), attempt %d/%d", exc.errno, attempt, attempts)

    raise TransientConflictError("The record is busy, please retry", attempts=attempts)


def is_duplicate_key(exc: DatabaseError) -> bool:
    return exc.errno == errorcode.ER_DUP_ENTRY


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values across connector implementations.

    mysql-connector can return TIME as:
    - datetime.time
    - datetime.timedelta
    - string (e.g. '08:30:00')
    """

    if value is None:
        return None

    if isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds()) % 86400
        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        seconds = total_seconds % 60
        return time(hour=hours, minute=minutes, second=seconds)

    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=hours, minute=minutes, second=seconds)

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")


def split_csv(value: Any) -> frozenset:
    """MySQL SET columns come back as a comma separated string (or a set)."""

    if not value:
        return frozenset()
    if isinstance(value, (set, frozenset)):
        return frozenset(value)
    return frozenset(part.strip() for part in str(value).split(",") if part.strip())
