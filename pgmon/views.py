"""Static descriptors of the statistics views pgmon can display."""

from __future__ import annotations

from dataclasses import dataclass

from pgmon.errors import ConfigError


@dataclass(frozen=True, slots=True)
class Column:
    """One displayed column of a view."""

    key: str  # column name in the result set
    header: str
    weight: int  # percentage of the table width
    numeric: bool = False


@dataclass(frozen=True, slots=True)
class ViewSpec:
    """Which statistics view to query and how to lay it out."""

    name: str
    relation: str
    caption: str
    columns: tuple[Column, ...]
    sort_key: str
    descending: bool
    limit: int
    show_header: bool

    def __post_init__(self) -> None:
        total = sum(c.weight for c in self.columns)
        if total != 100:
            raise ValueError(
                f"view {self.name!r}: column weights sum to {total}, expected 100"
            )
        if self.limit < 1:
            raise ValueError(f"view {self.name!r}: limit must be positive")

    @property
    def width(self) -> int:
        return len(self.columns)

    @property
    def headers(self) -> tuple[str, ...]:
        return tuple(c.header for c in self.columns)

    @property
    def weights(self) -> tuple[int, ...]:
        return tuple(c.weight for c in self.columns)

    @property
    def query(self) -> str:
        """SQL text; the row cap is bound as the single ``%s`` parameter."""
        cols = ", ".join(c.key for c in self.columns)
        order = "DESC" if self.descending else "ASC"
        return (
            f"SELECT {cols} FROM {self.relation} "
            f"ORDER BY {self.sort_key} {order} LIMIT %s"
        )


ACTIVITY = ViewSpec(
    name="activity",
    relation="pg_stat_activity",
    caption="pg_stat_activity",
    columns=(
        Column("pid", "PID", 10, numeric=True),
        Column("usename", "User", 10),
        Column("datname", "Database", 20),
        Column("state", "State", 10),
        Column("query", "Query", 50),
    ),
    sort_key="pid",
    descending=False,
    limit=10,
    show_header=False,
)

TABLE_STATS = ViewSpec(
    name="table_stats",
    relation="pg_stat_user_tables",
    caption="pg_stat_user_tables",
    columns=(
        Column("relname", "Table", 20),
        Column("seq_scan", "Seq Scan", 10, numeric=True),
        Column("seq_tup_read", "Seq Read", 10, numeric=True),
        Column("idx_scan", "Idx Scan", 10, numeric=True),
        Column("idx_tup_fetch", "Idx Fetch", 10, numeric=True),
        Column("n_tup_ins", "Inserts", 10, numeric=True),
        Column("n_tup_upd", "Updates", 10, numeric=True),
        Column("n_tup_del", "Deletes", 10, numeric=True),
        Column("n_live_tup", "Live Rows", 10, numeric=True),
    ),
    sort_key="seq_scan",
    descending=True,
    limit=15,
    show_header=True,
)

VIEWS: dict[str, ViewSpec] = {v.name: v for v in (ACTIVITY, TABLE_STATS)}


def get_view(name: str) -> ViewSpec:
    try:
        return VIEWS[name]
    except KeyError:
        choices = ", ".join(sorted(VIEWS))
        raise ConfigError(f"unknown view {name!r} (choose from: {choices})") from None
