# clearing/recorder.py
from __future__ import annotations

"""
Parquet-backed run recorder.

Layout
  <data_root>/runs/<run_id>/
    run_meta.json
    manifest.json              (written by finalize)
    shards/<table>_<seq>.parquet
    shards/<table>_index.json  (written by finalize)
    logs/

Tables written by the engine:
  state:   step,int | people..hermit (+ _rate, _bound),float | overcrowding,float
  actions: step,int | action,int | title,str

Rows are buffered per table and written once per shard sequence number; the
first batch of a table fixes its column order.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import os
import threading
import time

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq


@dataclass
class _TableBuf:
    name: str
    schema: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)
    shards: List[str] = field(default_factory=list)       # data/runs/<run_id>/shards/xxx.parquet
    written_rows: int = 0
    shard_seq: int = 0


def _stamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _ensure_dirs(run_dir: Path) -> None:
    (run_dir / "shards").mkdir(parents=True, exist_ok=True)
    (run_dir / "logs").mkdir(parents=True, exist_ok=True)


def _rel_shard_path(run_id: str, fname: str) -> str:
    return str(Path("data") / "runs" / run_id / "shards" / fname)


def _arrow_write(path: Path, frame: pd.DataFrame) -> None:
    table = pa.Table.from_pandas(frame, preserve_index=False)
    pq.write_table(
        table,
        where=str(path),
        compression="zstd",
        use_dictionary=True,
        write_statistics=True,
    )


def _httpize(prefix: Optional[str], rel_data_path: str) -> str:
    if not prefix:
        return rel_data_path
    p = rel_data_path
    if p.startswith("data/"):
        p = p[len("data/"):]
    return prefix.rstrip("/") + "/" + p.lstrip("/")


_INT_COLUMNS = ("step", "action")
_STR_COLUMNS = ("title",)


class ParquetRecorder:
    """
    Interface used by the engine:
      add(table: str, rows: List[dict])
      finalize()
    """

    def __init__(
        self,
        data_root: str | Path = "data",
        run_id: Optional[str] = None,
        *,
        https_prefix: Optional[str] = None,
        max_rows_per_shard: int = 200_000,
        flush_hint_rows: int = 10_000,
    ) -> None:
        self.data_root = Path(data_root)
        self.run_id = run_id or f"CLEARING_{int(time.time())}"
        self.run_dir = self.data_root / "runs" / self.run_id
        _ensure_dirs(self.run_dir)

        self.https_prefix = https_prefix or os.environ.get("DATA_URL_PREFIX") or None

        self.max_rows_per_shard = int(max_rows_per_shard)
        self.flush_hint_rows = int(flush_hint_rows)

        self._tables: Dict[str, _TableBuf] = {}
        self._lock = threading.Lock()

        self.manifest_path: Path = self.run_dir / "manifest.json"

        meta = {
            "run_id": self.run_id,
            "created_utc": _stamp(),
            "data_root": str(self.data_root),
            "https_prefix": self.https_prefix,
        }
        with (self.run_dir / "run_meta.json").open("w", encoding="utf-8") as f:
            json.dump(meta, f, indent=2)

    # ---------------------- public API ----------------------

    @property
    def tables(self) -> List[str]:
        return sorted(self._tables.keys())

    def add(self, table: str, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        with self._lock:
            T = self._tables.get(table)
            if T is None:
                T = _TableBuf(name=table)
                self._tables[table] = T

            if not T.schema:
                first = list(rows[0].keys())
                if "step" in first:
                    first = ["step"] + [k for k in first if k != "step"]
                T.schema = first

            T.rows.extend(rows)

            if len(T.rows) >= self.flush_hint_rows:
                self._flush_table(T)

    def finalize(self) -> None:
        with self._lock:
            for T in self._tables.values():
                self._flush_table(T)
            self._write_indices_and_manifest()

    # ---------------------- internals ----------------------

    def _flush_table(self, T: _TableBuf) -> None:
        # split the buffer so no shard holds more than max_rows_per_shard rows
        while T.rows:
            if T.written_rows == 0 or T.written_rows >= self.max_rows_per_shard:
                T.shard_seq += 1
                T.written_rows = 0
            room = max(1, self.max_rows_per_shard - T.written_rows)
            chunk, T.rows = T.rows[:room], T.rows[room:]
            self._write_chunk(T, chunk)

    def _write_chunk(self, T: _TableBuf, chunk: List[Dict[str, Any]]) -> None:
        fname = f"{T.name}_{T.shard_seq:04d}.parquet"
        rel_path = _rel_shard_path(self.run_id, fname)
        abs_path = self.run_dir / "shards" / fname

        df = pd.DataFrame.from_records(chunk)
        new_cols = [c for c in df.columns if c not in T.schema]
        if new_cols:
            T.schema += new_cols
        for col in T.schema:
            if col not in df.columns:
                df[col] = None
        df = df[T.schema]

        for col in df.columns:
            if col in _INT_COLUMNS:
                df[col] = df[col].astype("Int64")
            elif col in _STR_COLUMNS:
                df[col] = df[col].astype("string")
            elif pd.api.types.is_numeric_dtype(df[col]) or df[col].isna().all():
                df[col] = df[col].astype("float64")

        # a shard that already holds rows is rewritten with the old rows prepended
        if abs_path.exists() and T.written_rows > 0:
            df = pd.concat([pq.read_table(abs_path).to_pandas(), df], ignore_index=True)
        _arrow_write(abs_path, df)

        if rel_path not in T.shards:
            T.shards.append(rel_path)
        T.written_rows += len(chunk)

    def _write_indices_and_manifest(self) -> None:
        shards_dir = self.run_dir / "shards"
        for name, T in self._tables.items():
            files = [self._maybe_url(p) for p in T.shards]
            index_payload = {
                "table": name,
                "run_id": self.run_id,
                "files": files,
                "count": len(files),
            }
            with (shards_dir / f"{name}_index.json").open("w", encoding="utf-8") as f:
                json.dump(index_payload, f, indent=2)

        shards = []
        for name, T in self._tables.items():
            for rel in T.shards:
                shards.append({"table": name, "path": rel})

        manifest = {
            "run_id": self.run_id,
            "root": f"data/runs/{self.run_id}",
            "created_utc": _stamp(),
            "created_at": time.time(),
            "tables": sorted(self._tables.keys()),
            "shards": shards,
        }
        with self.manifest_path.open("w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)

    def _maybe_url(self, rel_path: str) -> str:
        return _httpize(self.https_prefix, rel_path)

    def shard_files(self, table: str) -> List[Path]:
        """Local paths of the shards written so far for `table`."""
        T = self._tables.get(table)
        if T is None:
            return []
        return [self.run_dir / "shards" / Path(p).name for p in T.shards]
