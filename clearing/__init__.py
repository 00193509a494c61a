# clearing/__init__.py
"""
Clearing core package.

Contains:
- filler   : bounded accumulator value type
- world    : five coupled accumulators, tick rule, discrete actions
- schedule : scripted player actions
- engine   : headless simulation loop
- observer : stats logger
- recorder : Parquet recorder
- catalog  : DuckDB run catalog
- runner   : CLI entrypoint
"""

# Public API
from .filler import Attempt, Filler
from .world import Action, Rules, World
from .engine import Engine
from .runner import run

__all__ = ["Action", "Attempt", "Engine", "Filler", "Rules", "World", "run"]
