# clearing/engine.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .observer import Observer, ObserverCfg
from .schedule import ActionSchedule
from .world import Rules, World


# ------------------------------- Config --------------------------------

@dataclass(frozen=True)
class EngineConfig:
    steps: int
    world: World
    rules: Rules
    schedule: ActionSchedule
    observer: ObserverCfg

    @classmethod
    def from_dict(cls, cfg: Optional[Dict[str, Any]], steps: Optional[int] = None) -> EngineConfig:
        """
        Nested config dict:
          world    : initial resource overrides (see World.from_dict)
          rules    : Rules coefficients
          actions  : list of ScheduledActionCfg dicts
          observer : ObserverCfg fields
          run      : {"steps": N}  (the `steps` argument wins when given)
        """
        cfg = cfg or {}
        if steps is None:
            steps = int(cfg.get("run", {}).get("steps", 0))
        if steps < 0:
            raise ValueError(f"steps must be >= 0, got {steps}")
        return cls(
            steps=int(steps),
            world=World.from_dict(cfg.get("world")),
            rules=Rules.from_dict(cfg.get("rules")),
            schedule=ActionSchedule.from_list(cfg.get("actions")),
            observer=ObserverCfg(**cfg.get("observer", {})),
        )


# ------------------------------ Engine ---------------------------------

class Engine:
    """
    Deterministic headless engine.

    Each step: one World.update(), then every scheduled action due at that
    step is applied with World.click(). Records through the recorder:
      - state   : one row per step (after actions)
      - actions : one row per fired action
    """

    def __init__(self, recorder, steps: Optional[int] = None, cfg: Optional[Dict[str, Any]] = None) -> None:
        self.recorder = recorder
        self.cfg = EngineConfig.from_dict(cfg, steps=steps)
        self.world: World = self.cfg.world
        self.run_root = Path(recorder.run_dir)
        self.observer = Observer(self.cfg.observer, self.run_root)
        self.summary: Dict[str, Dict[str, float]] = {}

    def step(self, step: int) -> List[int]:
        """Advance one tick and apply due actions; returns the fired action ids."""
        rules = self.cfg.rules
        self.world = self.world.update(rules)
        fired = self.cfg.schedule.due(step)
        for action_id in fired:
            self.world = self.world.click(action_id, rules)
        return fired

    def run(self) -> World:
        for step in range(self.cfg.steps):
            fired = self.step(step)

            self.recorder.add("state", [{"step": step, **self.world.as_row()}])
            if fired:
                self.recorder.add("actions", [
                    {"step": step, "action": int(a), "title": self.world.title(a)} for a in fired
                ])
            self.observer.step(self.world, step)

        self.summary = self.observer.summary()
        self.observer.finalize(extra={"run_id": self.recorder.run_id})
        self.recorder.finalize()

        (self.run_root / "_done.marker").write_text("ok", encoding="utf-8")
        return self.world
