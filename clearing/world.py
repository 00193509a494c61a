# clearing/world.py
from __future__ import annotations
import math
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Dict, Optional

from .filler import Filler


RESOURCES = ("people", "food", "land", "wild", "hermit")


class Action(IntEnum):
    GATHER = 1
    BIRTH = 2
    WAR = 3


ACTION_TITLES: Dict[int, str] = {
    Action.GATHER: "food",
    Action.BIRTH: "birth",
    Action.WAR: "war",
}


# ============================================================
# Coupling coefficients
# ============================================================

@dataclass(frozen=True)
class Rules:
    """
    Coefficients of the tick rule and the discrete actions.
      - unused_threshold:     unused land above which clearing slows as 1/unused
      - clearing_floor:       clearing factor used at or below the threshold
      - clearing_scale:       land rate = clearing factor * clearing_scale
      - food_per_person:      food rate contributed by each person
      - overcrowding_penalty: food rate lost per person over capacity
      - gather_amount:        food added by one gather action
      - birth_cost:           food consumed by one birth
      - birth_amount:         people added by one birth
    """
    unused_threshold: float = 5.0
    clearing_floor: float = 0.2
    clearing_scale: float = 0.1
    food_per_person: float = 0.001
    overcrowding_penalty: float = 0.004
    gather_amount: float = 1.0
    birth_cost: float = 10.0
    birth_amount: float = 1.0

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> Rules:
        d = d or {}
        unknown = set(d) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown rules keys: {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in d.items()})


DEFAULT_RULES = Rules()


# ============================================================
# World
# ============================================================

@dataclass(frozen=True)
class World:
    """
    Five coupled accumulators:
      people : settled population, capacity tracks cleared land
      food   : stock, capacity tracks cleared land, rate driven by people
      land   : cleared land, cleared faster when little of it is unused
      wild   : forest growth on the uncleared remainder
      hermit : people living in the forest, capacity tracks the forest

    Every transition returns a new World.
    """
    people: Filler
    food: Filler
    land: Filler
    wild: Filler
    hermit: Filler

    @classmethod
    def new(cls) -> World:
        return cls(
            people=Filler(0.0, -0.001, 10.0),
            food=Filler(10.0, 0.0, 10.0),
            land=Filler(10.0, 0.0, 10.0),
            wild=Filler(0.0, 0.01, 0.0),
            hermit=Filler(0.0, 0.001, 0.0),
        )

    def overcrowding(self) -> float:
        return self.people.amount_over_bound()

    # ------------------------------ Tick ------------------------------

    def update(self, rules: Rules = DEFAULT_RULES) -> World:
        """
        One tick. Every rate and bound is derived from this snapshot, then
        the accumulators advance independently.
        """
        unused = self.land.amount - self.food.amount
        clearing = 1.0 / unused if unused > rules.unused_threshold else rules.clearing_floor
        overcrowding = self.people.amount_over_bound()
        into_woods = not self.wild.is_empty() and overcrowding > 0.0

        people = self.people.with_bound(self.land.amount)
        food = Filler(
            amount=self.food.amount,
            rate=self.people.amount * rules.food_per_person - overcrowding * rules.overcrowding_penalty,
            bound=self.land.amount,
        )
        land = self.land.with_rate(clearing * rules.clearing_scale)
        wild = self.wild.with_bound(land.bound - land.amount)
        hermit = self.hermit.with_bound(wild.amount)

        # population only moves (shrinks) while over capacity
        return World(
            people=people.advance() if overcrowding > 0.0 else people,
            food=food.advance(),
            land=land.advance(),
            wild=wild.advance(),
            hermit=hermit.advance() if into_woods else hermit,
        )

    # ---------------------------- Actions -----------------------------

    def click(self, action_id: int, rules: Rules = DEFAULT_RULES) -> World:
        if action_id == Action.GATHER:
            res = self.food.deposit(rules.gather_amount)
            food = res.filler if res.ok else self.food.force_deposit(res.available)
            return replace(self, food=food)

        if action_id == Action.BIRTH:
            res = self.food.withdraw(rules.birth_cost)
            if not res.ok:
                return self
            return replace(self, people=self.people.force_deposit(rules.birth_amount), food=res.filler)

        if action_id == Action.WAR:
            deaths = float(math.floor(self.people.amount / 2.0))
            return replace(
                self,
                people=self.people.force_withdraw(deaths),
                land=self.land.add_to_bound(deaths),
            )

        return self

    # ---------------------------- Views -------------------------------

    def title(self, action_id: int) -> str:
        return ACTION_TITLES.get(action_id, "unused")

    def text(self) -> str:
        return (
            f"food: {self.food}\n"
            f"people: {self.people}\n"
            f"land: {self.land}\n"
            f"wild_growth: {self.wild}\n"
            f"wild_people: {self.hermit}\n"
        )

    def as_row(self) -> Dict[str, float]:
        """Flat amount/rate/bound columns for every resource."""
        row: Dict[str, float] = {}
        for name in RESOURCES:
            f: Filler = getattr(self, name)
            row[name] = float(f.amount)
            row[f"{name}_rate"] = float(f.rate)
            row[f"{name}_bound"] = float(f.bound)
        row["overcrowding"] = float(self.overcrowding())
        return row

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> World:
        """
        Initial world with per-resource overrides, e.g.
        {"people": [7, -0.001, 10]} or {"people": {"amount": 7}}.
        """
        w = cls.new()
        d = d or {}
        unknown = set(d) - set(RESOURCES)
        if unknown:
            raise ValueError(f"Unknown world resources: {sorted(unknown)}")
        fields = {}
        for name, values in d.items():
            base: Filler = getattr(w, name)
            if isinstance(values, dict):
                fields[name] = Filler(
                    amount=float(values.get("amount", base.amount)),
                    rate=float(values.get("rate", base.rate)),
                    bound=float(values.get("bound", base.bound)),
                )
            else:
                amount, rate, bound = values
                fields[name] = Filler(float(amount), float(rate), float(bound))
        return replace(w, **fields)
