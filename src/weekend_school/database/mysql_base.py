from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Sequence

import mysql.connector

from ..core.constants import MYSQL_DUPLICATE_KEY
from ..core.exceptions import DuplicateRecordError, StorageError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (connection, cursor) inside one transaction.

    Commits on success and rolls back on any error. Driver errors are translated:
    duplicate unique keys become DuplicateRecordError, everything else StorageError.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        logger.error("database unreachable: %s", e)
        raise StorageError("Database unavailable") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as e:
        conn.rollback()
        if getattr(e, "errno", None) == MYSQL_DUPLICATE_KEY:
            raise DuplicateRecordError(str(e)) from e
        raise StorageError("Database constraint violated") from e
    except mysql.connector.Error as e:
        conn.rollback()
        logger.error("database error: %s", e)
        raise StorageError("Database error") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Dict[str, Any] | None:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_clause(values: Sequence[Any]) -> str:
    """Placeholder list for `IN (...)`; callers must pass a non-empty sequence."""
    return ",".join(["%s"] * len(values))
