# clearing/runner.py
from __future__ import annotations

"""
Headless runner.

Responsibilities
- Load a JSON config, choose/normalize a run_id.
- Run the engine through a ParquetRecorder (shards, indices, manifest).
- Optionally register the finished run in a DuckDB catalog.
- Emit machine-parseable logs and non-zero exit codes on hard failures.
"""

import argparse
import datetime as _dt
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .catalog import update_catalog
from .engine import Engine
from .recorder import ParquetRecorder


# ------------------------------ helpers ------------------------------

def _utcnow() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


def _stamp() -> str:
    return _utcnow().strftime("%Y-%m-%dT%H:%M:%SZ")


def _ts_run_id(prefix: str = "CLEARING") -> str:
    return f"{prefix}_{_utcnow().strftime('%Y%m%dT%H%M%SZ')}"


def _echo(level: str, msg: str) -> None:
    print(f"[{_stamp()}] [{level}] {msg}", flush=True)


def _write_meta(run_dir: Path, meta: dict) -> None:
    # merged over the meta the recorder wrote at start-up
    meta_path = run_dir / "run_meta.json"
    if meta_path.is_file():
        meta = {**json.loads(meta_path.read_text(encoding="utf-8")), **meta}
    with meta_path.open("w", encoding="utf-8") as f:
        json.dump(meta, f, indent=2)


def load_config(config_path: Path) -> Dict[str, Any]:
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"config not found: {config_path}")
    cfg = json.loads(config_path.read_text(encoding="utf-8"))
    if not isinstance(cfg, dict):
        raise ValueError(f"config must be a JSON object, got {type(cfg).__name__}")
    return cfg


# ------------------------------ main flow ------------------------------

def run(
    config_path: Path,
    data_root: Path = Path("data"),
    run_id: Optional[str] = None,
    prefix: Optional[str] = None,
    steps: Optional[int] = None,
    catalog: Optional[Path] = None,
) -> str:
    """
    Execute a headless simulation and (optionally) register it in a catalog.

    Returns the resolved run_id.
    """
    resolved_run_id = run_id or _ts_run_id()

    _echo("RUN", f"run_id={resolved_run_id}")
    _echo("INFO", f"data_root={data_root}")
    _echo("INFO", f"config={config_path}")
    if prefix:
        _echo("INFO", f"public_prefix={prefix}")

    try:
        cfg = load_config(config_path)
        recorder = ParquetRecorder(data_root=data_root, run_id=resolved_run_id, https_prefix=prefix)
        engine = Engine(recorder=recorder, steps=steps, cfg=cfg)
        _echo("INFO", f"steps={engine.cfg.steps} scheduled_actions={len(engine.cfg.schedule)}")
        world = engine.run()
    except Exception as e:
        _echo("FATAL", f"Run failed: {type(e).__name__}: {e}")
        raise

    run_dir = recorder.run_dir

    for line in world.text().splitlines():
        _echo("INFO", line)

    if catalog is not None:
        try:
            update_catalog(Path(catalog), run_dir)
            _echo("OK", f"catalog updated: {catalog}")
        except Exception as e:
            _echo("ERROR", f"Catalog update failed: {type(e).__name__}: {e}")

    _write_meta(
        run_dir,
        {
            "run_id": resolved_run_id,
            "completed_utc": _stamp(),
            "data_root": str(data_root),
            "config_path": str(config_path),
            "public_prefix": prefix,
            "steps": engine.cfg.steps,
            "final_state": world.as_row(),
            "summary": engine.summary,
            "pid": os.getpid(),
        },
    )

    _echo("DONE", f"run_id={resolved_run_id}")
    return resolved_run_id


# ------------------------------ CLI ------------------------------

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Clearing headless runner")
    ap.add_argument("--config", required=True, help="Path to simulation config (JSON)")
    ap.add_argument("--data_root", default="data", help="Data root (default: data)")
    ap.add_argument("--run_id", default=None, help="Override run id (default: timestamped)")
    ap.add_argument("--steps", type=int, default=None, help="Override run.steps from the config")
    ap.add_argument(
        "--prefix",
        default=os.environ.get("DATA_URL_PREFIX", "").strip() or None,
        help="Public HTTPS prefix written into shard indices",
    )
    ap.add_argument("--catalog", default=None, help="DuckDB catalog file to register the run in")
    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        run(
            config_path=Path(args.config),
            data_root=Path(args.data_root),
            run_id=args.run_id,
            prefix=args.prefix,
            steps=args.steps,
            catalog=Path(args.catalog) if args.catalog else None,
        )
    except Exception:
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
