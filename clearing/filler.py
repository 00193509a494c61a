# clearing/filler.py
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional


# ============================================================
# Results
# ============================================================

@dataclass(frozen=True)
class Attempt:
    """
    Outcome of a guarded deposit/withdraw.

      - ok:        True when the whole quantity was moved
      - filler:    updated accumulator (None on failure)
      - available: on failure, the most that could have been moved
                   (headroom for deposit, current amount for withdraw);
                   on success, the quantity actually moved
    """
    ok: bool
    filler: Optional["Filler"]
    available: float


# ============================================================
# Bounded accumulator
# ============================================================

@dataclass(frozen=True)
class Filler:
    """
    Immutable bounded accumulator: an amount that moves by `rate` each tick
    and saturates at 0 and `bound`.

    Advancement never pushes the amount outside [0, bound]. The amount may
    still sit above the bound after `with_bound` lowers it or after a
    `force_deposit`; `amount_over_bound()` reports that overflow.
    """
    amount: float
    rate: float
    bound: float

    def is_empty(self) -> bool:
        return self.amount == 0.0

    def amount_over_bound(self) -> float:
        over = self.amount - self.bound
        return over if over > 0.0 else 0.0

    def advance(self) -> Filler:
        """
        One tick of motion. Saturated accumulators stay put; otherwise the
        rate is applied and the result clamped in the direction of travel.
        """
        if (self.amount >= self.bound and self.rate > 0.0) or (self.amount <= 0.0 and self.rate < 0.0):
            return self
        moved = self.amount + self.rate
        if moved > self.bound and self.rate > 0.0:
            moved = self.bound
        elif moved < 0.0 and self.rate < 0.0:
            moved = 0.0
        return replace(self, amount=moved)

    # ------------------------- field updates -------------------------

    def with_amount(self, value: float) -> Filler:
        return replace(self, amount=value)

    def with_rate(self, value: float) -> Filler:
        return replace(self, rate=value)

    def with_bound(self, value: float) -> Filler:
        # no clamping: a lowered bound leaves the amount above it
        return replace(self, bound=value)

    def add_to_bound(self, value: float) -> Filler:
        return replace(self, bound=self.bound + value)

    # ------------------------- transfers -------------------------

    def force_deposit(self, value: float) -> Filler:
        return replace(self, amount=self.amount + value)

    def deposit(self, value: float) -> Attempt:
        fits = self.bound - self.amount
        if value <= fits:
            return Attempt(ok=True, filler=self.force_deposit(value), available=value)
        return Attempt(ok=False, filler=None, available=fits)

    def force_withdraw(self, value: float) -> Filler:
        return replace(self, amount=self.amount - value)

    def withdraw(self, value: float) -> Attempt:
        if self.amount >= value:
            return Attempt(ok=True, filler=self.force_withdraw(value), available=value)
        return Attempt(ok=False, filler=None, available=self.amount)

    def __str__(self) -> str:
        return f"{self.amount:.2f}/{self.bound:.2f}"
