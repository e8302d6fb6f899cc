from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import time
from typing import Any, Dict, List, Optional, Sequence

import mysql.connector

from ..common.datetime_utils import parse_wall_time
from ..core.exceptions import BackendError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor); commit on success, roll back on any error.

    Driver errors surface as BackendError so services never see
    mysql.connector types.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        logger.error("store unreachable: %s", e)
        raise BackendError("Banco de dados indisponível") from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        logger.error("store operation failed: %s", e)
        raise BackendError("Falha ao acessar o banco de dados") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_clause(values: Sequence[Any]) -> str:
    """Placeholder list for an IN (...) filter. Callers must pass non-empty values."""
    return ",".join(["%s"] * len(values))


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values across connector implementations.

    mysql-connector can return TIME as:
    - datetime.time
    - datetime.timedelta
    - string (e.g. '08:30:00')
    """

    if value is None:
        return None
    return parse_wall_time(value)


def load_list(value: Any) -> list[str]:
    """Decode a list column (JSON text, '{a,b}' literal or comma separated)."""

    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")

    text = str(value).strip()
    if text.startswith("[") and text.endswith("]"):
        try:
            parsed = json.loads(text)
        except ValueError:
            return []
        return [str(v) for v in parsed] if isinstance(parsed, list) else []
    if text.startswith("{") and text.endswith("}"):
        text = text[1:-1]
    return [s.strip().strip('"') for s in text.split(",") if s.strip()]


def as_optional_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return bool(int(value))
