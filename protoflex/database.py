"""SQLite schema setup."""

import sqlite3
from dataclasses import dataclass, field


@dataclass(frozen=True)
class _Table:
    name: str
    columns: tuple[tuple[str, str], ...]
    references: dict[str, str] = field(default_factory=dict)

    def ddl(self):
        parts = [f"{column} {definition}" for column, definition in self.columns]
        parts.extend(
            f"FOREIGN KEY ({column}) REFERENCES {target} ON DELETE CASCADE"
            for column, target in self.references.items()
        )
        return f"CREATE TABLE IF NOT EXISTS {self.name} ({', '.join(parts)})"


_KEY = "INTEGER PRIMARY KEY AUTOINCREMENT"
_REQUIRED_TEXT = "TEXT NOT NULL"
_REQUIRED_INT = "INTEGER NOT NULL"
_EMPTY_JSON_LIST = "TEXT DEFAULT '[]'"

# Column order matters: repositories read rows positionally.
_TABLES = (
    _Table(
        "servers",
        (
            ("id", _KEY),
            ("ip", _REQUIRED_TEXT),
            ("name", _REQUIRED_TEXT),
            ("tunnel_list", _EMPTY_JSON_LIST),
        ),
    ),
    _Table(
        "tunnels",
        (
            ("id", _KEY),
            ("server_id", _REQUIRED_INT),
            ("interface_name", _REQUIRED_TEXT),
            ("connected_connections", _EMPTY_JSON_LIST),
        ),
        {"server_id": "servers(id)"},
    ),
    _Table(
        "AddedExecutables",
        (
            ("id", _KEY),
            ("tunnel_id", _REQUIRED_INT),
            ("path", _REQUIRED_TEXT),
            ("arguments", "TEXT DEFAULT ''"),
            ("active", "BOOLEAN DEFAULT FALSE"),
        ),
        {"tunnel_id": "tunnels(id)"},
    ),
)


def setup_database(connection):
    """Create the servers, tunnels and AddedExecutables tables if missing."""
    with connection:
        for table in _TABLES:
            connection.execute(table.ddl())


def open_database(path):
    """Open (or create) the database at ``path`` and make sure the schema exists."""
    connection = sqlite3.connect(str(path), isolation_level=None, check_same_thread=False)
    try:
        setup_database(connection)
    except sqlite3.Error:
        connection.close()
        raise
    return connection