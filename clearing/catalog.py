# clearing/catalog.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Iterable, List
import json

import duckdb

from .world import RESOURCES


def _ensure_schema(con: duckdb.DuckDBPyConnection) -> None:
    con.execute("""
        CREATE TABLE IF NOT EXISTS runs(
            run_id TEXT PRIMARY KEY,
            created_at DOUBLE,
            created_at_iso TEXT,
            notes TEXT
        );
    """)
    con.execute("""
        CREATE TABLE IF NOT EXISTS shards(
            run_id TEXT,
            table_name TEXT,
            shard_path TEXT
        );
    """)
    con.execute("""
        CREATE TABLE IF NOT EXISTS table_counts(
            run_id TEXT,
            table_name TEXT,
            shard_count BIGINT
        );
    """)
    cols = ",\n            ".join(f"{name} DOUBLE" for name in RESOURCES)
    con.execute(f"""
        CREATE TABLE IF NOT EXISTS final_state(
            run_id TEXT PRIMARY KEY,
            step BIGINT,
            {cols},
            overcrowding DOUBLE
        );
    """)


def _read_manifest(run_dir: Path) -> Dict[str, Any]:
    mpath = run_dir / "manifest.json"
    if not mpath.exists():
        raise FileNotFoundError(f"manifest.json not found at {mpath}")
    return json.loads(mpath.read_text(encoding="utf-8"))


def _upsert_run(con: duckdb.DuckDBPyConnection, m: Dict[str, Any]) -> None:
    con.execute(
        "INSERT OR REPLACE INTO runs(run_id, created_at, created_at_iso, notes) VALUES (?, ?, ?, ?)",
        [str(m.get("run_id", "UNKNOWN")), float(m.get("created_at", 0.0)), str(m.get("created_utc", "")), ""],
    )


def _replace_shards(con: duckdb.DuckDBPyConnection, run_id: str, shards: Iterable[Dict[str, Any]]) -> None:
    con.execute("DELETE FROM shards WHERE run_id = ?", [run_id])
    rows = [(run_id, str(s.get("table", "unknown")), str(s.get("path", ""))) for s in shards]
    if rows:
        con.executemany("INSERT INTO shards(run_id, table_name, shard_path) VALUES (?, ?, ?)", rows)

    con.execute("DELETE FROM table_counts WHERE run_id = ?", [run_id])
    con.execute("""
        INSERT INTO table_counts
        SELECT run_id, table_name, COUNT(*) AS shard_count
        FROM shards
        WHERE run_id = ?
        GROUP BY run_id, table_name
    """, [run_id])


def _replace_final_state(con: duckdb.DuckDBPyConnection, run_id: str, state_files: List[Path]) -> None:
    con.execute("DELETE FROM final_state WHERE run_id = ?", [run_id])
    if not state_files:
        return
    cols = ", ".join(RESOURCES)
    files = ", ".join("'" + str(p).replace("'", "''") + "'" for p in state_files)
    con.execute(
        f"""
        INSERT INTO final_state
        SELECT ? AS run_id, step, {cols}, overcrowding
        FROM read_parquet([{files}])
        ORDER BY step DESC
        LIMIT 1
        """,
        [run_id],
    )


def update_catalog(catalog_path: Path, run_dir: Path) -> None:
    """
    Update (or create) a DuckDB catalog from <run_dir>/manifest.json.
    """
    catalog_path = Path(catalog_path)
    run_dir = Path(run_dir)
    m = _read_manifest(run_dir)
    run_id = str(m.get("run_id", "UNKNOWN"))
    shards = m.get("shards", [])
    # manifest paths are rooted at data/; resolve state shards inside this run dir
    state_files = [
        run_dir / "shards" / Path(s["path"]).name
        for s in shards
        if s.get("table") == "state" and s.get("path")
    ]
    con = duckdb.connect(str(catalog_path))
    try:
        _ensure_schema(con)
        _upsert_run(con, m)
        _replace_shards(con, run_id, shards)
        _replace_final_state(con, run_id, [p for p in state_files if p.exists()])
    finally:
        con.close()
