# clearing/observer.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .world import RESOURCES, World


@dataclass
class ObserverCfg:
    """
    Optional observer for diagnostics.

    Parameters
    ----------
    log_every : int
        Interval of steps at which to sample the world (0 = off).
    out_dir : Optional[str]
        Directory for observer_stats.csv. Defaults to the run directory.
    """
    log_every: int = 0
    out_dir: Optional[str] = None


class Observer:
    """
    Headless observer.
    - Every `log_every` steps, samples each resource amount and the overcrowding.
    - summary() reduces the samples to min/max/mean per column.
    - finalize() writes the samples to CSV.
    """
    def __init__(self, cfg: ObserverCfg, run_dir: Path) -> None:
        self.cfg = cfg
        self.run_dir = Path(cfg.out_dir or run_dir)
        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.last_stats: Dict[str, Any] = {}
        self._rows: List[Dict[str, Any]] = []
        self._csv_path = self.run_dir / "observer_stats.csv" if cfg.log_every > 0 else None

    def step(self, world: World, step: int) -> None:
        if self.cfg.log_every <= 0:
            return
        if (step % self.cfg.log_every) != 0:
            return

        stats: Dict[str, Any] = {"step": int(step)}
        for name in RESOURCES:
            stats[name] = float(getattr(world, name).amount)
        stats["overcrowding"] = float(world.overcrowding())
        self.last_stats = stats
        self._rows.append(stats)

    def summary(self) -> Dict[str, Dict[str, float]]:
        if not self._rows:
            return {}
        out: Dict[str, Dict[str, float]] = {}
        for col in (*RESOURCES, "overcrowding"):
            v = np.asarray([r[col] for r in self._rows], dtype=np.float64)
            out[col] = {
                "min": float(np.min(v)),
                "max": float(np.max(v)),
                "mean": float(np.mean(v)),
            }
        return out

    def finalize(self, extra: Dict[str, Any] | None = None) -> None:
        if self._csv_path is None or not self._rows:
            return
        df = pd.DataFrame(self._rows)
        if extra:
            for k, v in extra.items():
                df[k] = v
        df.to_csv(self._csv_path, index=False)
        self._rows.clear()
