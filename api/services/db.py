"""SQLite access for the CBDB database."""
from __future__ import annotations

import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd
from pandas.io.sql import DatabaseError


@dataclass(frozen=True)
class Database:
    """Handle on one CBDB SQLite file.

    Built once from settings and passed explicitly to the repository
    functions. Every query opens its own connection, so a handle can be
    shared between requests.
    """

    path: Path
    read_only: bool = True

    def exists(self) -> bool:
        return self.path.is_file()

    def connect(self) -> sqlite3.Connection:
        if self.read_only:
            return sqlite3.connect(f"file:{self.path.as_posix()}?mode=ro", uri=True)
        return sqlite3.connect(self.path)

    def query_df(self, sql: str, params: Sequence = ()) -> pd.DataFrame:
        with closing(self.connect()) as conn:
            try:
                return pd.read_sql_query(sql, conn, params=tuple(params))
            except DatabaseError as e:
                # pandas wraps driver errors; re-raise the sqlite3 one
                if isinstance(e.__cause__, sqlite3.Error):
                    raise e.__cause__
                raise

    def query_one(self, sql: str, params: Sequence = ()) -> Optional[dict]:
        with closing(self.connect()) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(sql, tuple(params)).fetchone()
            return dict(row) if row else None

    def table_exists(self, table_name: str) -> bool:
        sql = "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?"
        return bool(self.query_one(sql, (table_name,)))


def placeholders(values: Sequence) -> str:
    return ", ".join(["?"] * len(values))
