# clearing/schedule.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from .world import Action


ACTION_NAMES: Dict[str, int] = {
    "food": Action.GATHER,
    "gather": Action.GATHER,
    "birth": Action.BIRTH,
    "war": Action.WAR,
}


@dataclass
class ScheduledActionCfg:
    """
    Deterministic stand-in for a player pressing one action button.

    Parameters
    ----------
    action     : int | str   # action id (1/2/3) or name ("food"/"gather", "birth", "war")
    start_step : int         # first step (inclusive)
    stop_step  : Optional[int]  # last step (inclusive); None = forever
    every      : int         # fire every N steps (>=1), counted from start_step
    """
    action: Union[int, str] = Action.GATHER
    start_step: int = 0
    stop_step: Optional[int] = None
    every: int = 1


def resolve_action(action: Union[int, str]) -> int:
    """
    Map an action name or id to its id. Integer ids pass through untouched
    (unrecognized ids are no-ops in World.click).
    """
    if isinstance(action, str):
        key = action.strip().lower()
        if key.isdigit():
            return int(key)
        if key not in ACTION_NAMES:
            raise ValueError(f"Unknown action name '{action}' (expected one of {sorted(ACTION_NAMES)})")
        return int(ACTION_NAMES[key])
    return int(action)


class ActionSchedule:
    """
    Ordered list of scheduled actions. `due(step)` returns the action ids
    firing at that step, in configuration order.
    """
    def __init__(self, entries: Iterable[ScheduledActionCfg]) -> None:
        self.entries: List[ScheduledActionCfg] = list(entries)
        self._ids: List[int] = []
        for e in self.entries:
            if int(e.every) < 1:
                raise ValueError(f"Scheduled action '{e.action}' needs every >= 1, got {e.every}")
            self._ids.append(resolve_action(e.action))

    @classmethod
    def from_list(cls, items: Optional[List[Dict[str, Any]]]) -> ActionSchedule:
        return cls(ScheduledActionCfg(**item) for item in (items or []))

    def due(self, step: int) -> List[int]:
        out: List[int] = []
        for e, action_id in zip(self.entries, self._ids):
            if step < e.start_step:
                continue
            if e.stop_step is not None and step > e.stop_step:
                continue
            if (step - e.start_step) % int(e.every) != 0:
                continue
            out.append(action_id)
        return out

    def __len__(self) -> int:
        return len(self.entries)
