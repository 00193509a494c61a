# tests/test_schedule.py
from __future__ import annotations

import pytest

from clearing.schedule import ActionSchedule, ScheduledActionCfg, resolve_action


def test_resolve_action_names_and_ids():
    assert resolve_action("food") == 1
    assert resolve_action("Gather") == 1
    assert resolve_action("birth") == 2
    assert resolve_action("war") == 3
    assert resolve_action("3") == 3
    assert resolve_action(7) == 7
    with pytest.raises(ValueError):
        resolve_action("plague")


def test_window_and_period():
    s = ActionSchedule([ScheduledActionCfg(action="war", start_step=5, stop_step=20, every=5)])
    fired = [step for step in range(30) if s.due(step)]
    assert fired == [5, 10, 15, 20]
    assert s.due(10) == [3]


def test_entries_fire_in_config_order():
    s = ActionSchedule.from_list([
        {"action": "birth", "every": 2},
        {"action": 1},
    ])
    assert s.due(0) == [2, 1]
    assert s.due(1) == [1]
    assert len(s) == 2


def test_invalid_period_is_rejected():
    with pytest.raises(ValueError):
        ActionSchedule([ScheduledActionCfg(action=1, every=0)])


def test_empty_schedule():
    s = ActionSchedule.from_list(None)
    assert s.due(0) == []
