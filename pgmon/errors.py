"""Error kinds for pgmon.

Every fatal condition the dashboard can hit is one of these. None of them is
recovered locally: the refresh loop drains, the terminal is restored, and the
message is printed before a non-zero exit.
"""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for fatal pgmon errors."""


class ConfigError(DashboardError):
    """Missing or invalid configuration (e.g. no connection string)."""


class DatabaseConnectionError(DashboardError):
    """The initial connection to the database could not be opened."""


class QueryError(DashboardError):
    """A query was rejected or returned something we cannot display."""


class TerminalError(DashboardError):
    """Entering, drawing to, or leaving the terminal failed."""
