"""Fetching rows from the monitored PostgreSQL server.

One query per refresh tick, no caching. Each record is flattened into a
tuple of display strings with exactly one entry per column of the view.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import psycopg
from psycopg.rows import dict_row

from pgmon.errors import DatabaseConnectionError, QueryError
from pgmon.views import ViewSpec

logger = logging.getLogger(__name__)

Row = tuple[str, ...]

CONNECT_TIMEOUT = 5  # seconds

# libpq keepalive probing: a dropped server shows up as an error on the
# next query instead of a hang.
_CONNECT_PARAMS: dict[str, Any] = {
    "connect_timeout": CONNECT_TIMEOUT,
    "keepalives": 1,
    "keepalives_idle": 30,
    "keepalives_interval": 10,
    "keepalives_count": 3,
    "application_name": "pgmon",
    "options": "-c default_transaction_read_only=on",
}


def connect(dsn: str) -> psycopg.Connection[dict[str, Any]]:
    """Open the long-lived, read-only connection used for every fetch."""
    try:
        conn = psycopg.connect(
            dsn, autocommit=True, row_factory=dict_row, **_CONNECT_PARAMS
        )
    except psycopg.Error as e:
        raise DatabaseConnectionError(f"could not connect: {e}") from e
    logger.info("connected to %s", conn.info.dsn)
    return conn


def _cell(value: Any, numeric: bool) -> str:
    if value is None:
        return "0" if numeric else ""
    if numeric:
        return str(value)
    # Keep multi-line query text on a single table row.
    return " ".join(str(value).split())


def format_row(record: Mapping[str, Any], view: ViewSpec) -> Row:
    """Turn one result record into display strings, one per column."""
    return tuple(_cell(record.get(c.key), c.numeric) for c in view.columns)


def fetch(conn: Any, view: ViewSpec) -> list[Row]:
    """Run the view's query once and format the result.

    Raises:
        QueryError: If the query fails (dead connection, missing privilege,
            view absent on this server version) or returns non-mapping rows.
    """
    try:
        records = conn.execute(view.query, (view.limit,)).fetchall()
    except psycopg.Error as e:
        raise QueryError(f"{view.relation}: {e}") from e

    rows: list[Row] = []
    for record in records[: view.limit]:
        if not isinstance(record, Mapping):
            raise QueryError(
                f"{view.relation}: unexpected record type {type(record).__name__}"
            )
        rows.append(format_row(record, view))
    logger.debug("fetched %d rows from %s", len(rows), view.relation)
    return rows


class DataSource:
    """Owns the connection for the lifetime of the process."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    @classmethod
    def open(cls, dsn: str) -> DataSource:
        return cls(connect(dsn))

    @property
    def connection(self) -> Any:
        return self._conn

    def fetch(self, view: ViewSpec) -> list[Row]:
        return fetch(self._conn, view)

    def close(self) -> None:
        try:
            self._conn.close()
        except psycopg.Error as e:
            logger.warning("error closing connection: %s", e)
        else:
            logger.info("connection closed")

    def __enter__(self) -> DataSource:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
