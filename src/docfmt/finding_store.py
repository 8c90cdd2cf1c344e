"""DuckDB store for lint runs and their findings.

Manages ``lint_index/findings.duckdb``:

* ``lint_runs`` one row per lint invocation (config snapshot as JSON)
* ``findings``  one row per finding, keyed by run and resource

Findings keep their emission order through ``seq`` so a stored run reads
back exactly as it was reported.
"""
from __future__ import annotations

import importlib
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType
from typing import Any

import orjson

from docfmt.rules import Finding

# Dynamic DuckDB import for pyright compatibility
_duckdb_mod = importlib.import_module("duckdb")

SCHEMA_VERSION = "0.1.0"


class SchemaVersionError(RuntimeError):
    """Raised when a findings DB schema version does not match expected."""


_SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS _schema_version (
    table_name VARCHAR PRIMARY KEY,
    version VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS lint_runs (
    run_id VARCHAR PRIMARY KEY,
    started_at TIMESTAMP NOT NULL,
    config_json VARCHAR NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS findings (
    run_id VARCHAR NOT NULL,
    seq INTEGER NOT NULL,
    resource VARCHAR NOT NULL,
    rule_id VARCHAR NOT NULL,
    kind VARCHAR NOT NULL,
    path VARCHAR NOT NULL,
    line INTEGER NOT NULL DEFAULT 0,
    message VARCHAR NOT NULL,
    PRIMARY KEY (run_id, seq)
)
"""

_FINDING_COLS = ["resource", "rule_id", "kind", "path", "line", "message"]


def _now() -> datetime:
    # naive UTC, the column is a plain TIMESTAMP
    return datetime.now(UTC).replace(tzinfo=None)


class FindingStore:
    """Read/write access to the findings database."""

    def __init__(self, db_path: Path | str, *, create_if_missing: bool = False) -> None:
        self._db_path = Path(db_path)
        if not self._db_path.exists() and not create_if_missing:
            raise FileNotFoundError(f"Findings database not found: {self._db_path}")
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Any = _duckdb_mod.connect(str(self._db_path))
        try:
            self._create_schema()
        except Exception:
            self._conn.close()
            raise

    def _create_schema(self) -> None:
        for stmt in _SCHEMA_DDL.split(";"):
            stmt = stmt.strip()
            if stmt:
                self._conn.execute(stmt)
        row = self._conn.execute(
            "SELECT version FROM _schema_version WHERE table_name = 'findings'"
        ).fetchone()
        if row is None:
            self._conn.execute(
                "INSERT INTO _schema_version VALUES ('findings', ?)", [SCHEMA_VERSION]
            )
        elif row[0] != SCHEMA_VERSION:
            raise SchemaVersionError(
                f"Schema version mismatch in {self._db_path}: "
                f"expected {SCHEMA_VERSION}, got {row[0]}"
            )

    # -- lifecycle ---------------------------------------------------------

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> FindingStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- runs --------------------------------------------------------------

    def start_run(self, config: dict[str, Any] | None = None, *, run_id: str | None = None) -> str:
        rid = run_id or str(uuid.uuid4())
        self._conn.execute(
            "INSERT INTO lint_runs (run_id, started_at, config_json) VALUES (?, ?, ?)",
            [rid, _now(), orjson.dumps(config or {}, option=orjson.OPT_SORT_KEYS).decode("utf-8")],
        )
        return rid

    def get_run(self, run_id: str) -> dict[str, Any] | None:
        row = self._conn.execute(
            "SELECT run_id, started_at, config_json FROM lint_runs WHERE run_id = ?",
            [run_id],
        ).fetchone()
        if row is None:
            return None
        return {
            "run_id": row[0],
            "started_at": row[1].isoformat() if row[1] is not None else "",
            "config": orjson.loads(row[2]),
        }

    # -- findings ----------------------------------------------------------

    def record_findings(self, run_id: str, resource: str, findings: Iterable[Finding]) -> int:
        """Append findings for one resource; returns the number written."""
        row = self._conn.execute(
            "SELECT COALESCE(MAX(seq), -1) FROM findings WHERE run_id = ?", [run_id]
        ).fetchone()
        next_seq = int(row[0]) + 1
        rows = [
            [run_id, next_seq + i, resource, f.rule_id, f.kind, f.path, f.line, f.message]
            for i, f in enumerate(findings)
        ]
        if rows:
            self._conn.executemany(
                "INSERT INTO findings (run_id, seq, resource, rule_id, kind, path, line, message) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def get_findings(self, run_id: str, *, resource: str | None = None) -> list[dict[str, Any]]:
        sql = f"SELECT {', '.join(_FINDING_COLS)} FROM findings WHERE run_id = ?"
        params: list[Any] = [run_id]
        if resource is not None:
            sql += " AND resource = ?"
            params.append(resource)
        sql += " ORDER BY seq"
        rows = self._conn.execute(sql, params).fetchall()
        return [dict(zip(_FINDING_COLS, r, strict=True)) for r in rows]

    def summary(self, run_id: str) -> dict[str, int]:
        """Finding counts by rule id for one run."""
        rows = self._conn.execute(
            "SELECT rule_id, COUNT(*) FROM findings WHERE run_id = ? "
            "GROUP BY rule_id ORDER BY rule_id",
            [run_id],
        ).fetchall()
        return {str(r[0]): int(r[1]) for r in rows}
