# tests/smoke_test.py
from __future__ import annotations
import json
from pathlib import Path

import duckdb
import pandas as pd
import pytest

from clearing.catalog import update_catalog
from clearing.engine import Engine
from clearing.recorder import ParquetRecorder


def _cfg(steps: int) -> dict:
    return {
        "actions": [
            {"action": "gather", "every": 10},
            {"action": "birth", "start_step": 5, "stop_step": 5},
        ],
        "observer": {"log_every": 10},
        "run": {"steps": steps},
    }


@pytest.mark.quick
def test_end_to_end_smoke(tmp_path: Path) -> None:
    """
    End-to-end smoke test:
      Engine.run() -> parquet shards + manifest + observer CSV
      -> update_catalog()
      -> query the DuckDB catalog
    """
    data_root = tmp_path / "data"
    run_id = "CLEARING_SMOKE_TEST"
    steps = 50

    rec = ParquetRecorder(data_root=str(data_root), run_id=run_id)
    engine = Engine(recorder=rec, steps=steps, cfg=_cfg(steps))
    world = engine.run()

    # birth at step 5 spends the whole store; gathers at 10..40 add 4;
    # one person grows food by 0.001 for 44 ticks
    assert world.people.amount == 1.0
    assert world.food.amount == pytest.approx(4.044)

    run_dir = data_root / "runs" / run_id
    assert (run_dir / "_done.marker").read_text() == "ok"

    manifest = json.loads((run_dir / "manifest.json").read_text())
    assert manifest["tables"] == ["actions", "state"]

    state = pd.concat([pd.read_parquet(p) for p in rec.shard_files("state")], ignore_index=True)
    assert len(state) == steps
    assert state["step"].tolist() == list(range(steps))
    assert state["people"].iloc[-1] == 1.0
    assert (state["land"] <= state["land_bound"]).all()

    actions = pd.read_parquet(rec.shard_files("actions")[0])
    assert actions["step"].tolist() == [0, 5, 10, 20, 30, 40]
    assert actions["title"].tolist() == ["food", "birth", "food", "food", "food", "food"]

    stats = pd.read_csv(run_dir / "observer_stats.csv")
    assert stats["step"].tolist() == [0, 10, 20, 30, 40]
    assert set(stats["run_id"]) == {run_id}
    assert engine.summary["people"]["max"] == 1.0
    assert engine.summary["overcrowding"]["max"] == 0.0

    catalog = tmp_path / "catalog.duckdb"
    update_catalog(catalog, run_dir)
    update_catalog(catalog, run_dir)
    con = duckdb.connect(str(catalog))
    try:
        assert con.execute("SELECT COUNT(*) FROM runs").fetchone()[0] == 1
        counts = dict(con.execute("SELECT table_name, shard_count FROM table_counts").fetchall())
        assert counts == {"actions": 1, "state": 1}
        step, people, food = con.execute(
            "SELECT step, people, food FROM final_state WHERE run_id = ?", [run_id]
        ).fetchone()
        assert step == steps - 1
        assert people == 1.0
        assert food == pytest.approx(4.044)
    finally:
        con.close()


def test_engine_steps_from_config(tmp_path: Path) -> None:
    rec = ParquetRecorder(data_root=tmp_path, run_id="CFG_STEPS")
    engine = Engine(recorder=rec, cfg={"world": {"people": [7, -0.001, 10]}, "run": {"steps": 3}})
    assert engine.cfg.steps == 3
    assert engine.world.people.amount == 7.0
    engine.run()
    assert len(pd.read_parquet(rec.shard_files("state")[0])) == 3
    assert rec.shard_files("actions") == []


def test_engine_step_applies_actions_after_tick(tmp_path: Path) -> None:
    rec = ParquetRecorder(data_root=tmp_path, run_id="STEP")
    engine = Engine(recorder=rec, steps=1, cfg={
        "world": {"people": [7, -0.001, 10]},
        "actions": [{"action": "war"}],
    })
    fired = engine.step(0)
    assert fired == [3]
    assert engine.world.people.amount == 4.0
    assert engine.world.land.bound == 13.0
    # the tick ran first: people bound already tracks land
    assert engine.world.people.bound == 10.0


def test_engine_rejects_bad_config(tmp_path: Path) -> None:
    rec = ParquetRecorder(data_root=tmp_path, run_id="BAD")
    with pytest.raises(ValueError):
        Engine(recorder=rec, steps=1, cfg={"actions": [{"action": "plague"}]})
    with pytest.raises(ValueError):
        Engine(recorder=rec, steps=-1, cfg={})
    with pytest.raises(TypeError):
        Engine(recorder=rec, steps=1, cfg={"observer": {"every": 3}})
