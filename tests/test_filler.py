# tests/test_filler.py
from __future__ import annotations

import pytest

from clearing.filler import Attempt, Filler


def test_advance_stays_within_bounds_when_starting_inside():
    for amount in (0.0, 0.3, 5.0, 9.95, 10.0):
        for rate in (-3.0, -0.1, 0.0, 0.1, 0.07, 3.0):
            f = Filler(amount, rate, 10.0)
            for _ in range(50):
                f = f.advance()
                assert 0.0 <= f.amount <= f.bound


def test_advance_saturates_instead_of_moving():
    full = Filler(10.0, 0.5, 10.0)
    assert full.advance() == full
    empty = Filler(0.0, -0.5, 10.0)
    assert empty.advance() == empty


def test_advance_clamps_in_direction_of_travel():
    assert Filler(9.8, 0.5, 10.0).advance().amount == 10.0
    assert Filler(0.2, -0.5, 10.0).advance().amount == 0.0
    assert Filler(4.0, 0.5, 10.0).advance().amount == pytest.approx(4.5)


def test_over_bound_amount_drains_by_rate():
    # a lowered bound is not snapped back; the negative rate drains it
    f = Filler(12.0, -0.001, 10.0)
    assert f.advance().amount == pytest.approx(11.999)
    # positive rate over the bound holds the value
    g = Filler(12.0, 0.5, 10.0)
    assert g.advance() == g


def test_amount_over_bound():
    assert Filler(3.0, 0.0, 10.0).amount_over_bound() == 0.0
    assert Filler(10.0, 0.0, 10.0).amount_over_bound() == 0.0
    assert Filler(12.5, 0.0, 10.0).amount_over_bound() == 2.5


def test_with_bound_does_not_clamp():
    f = Filler(8.0, 0.0, 10.0).with_bound(5.0)
    assert f.amount == 8.0
    assert f.bound == 5.0
    assert f.amount_over_bound() == 3.0


def test_field_updates_return_new_values():
    f = Filler(1.0, 0.1, 10.0)
    assert f.with_amount(2.0) == Filler(2.0, 0.1, 10.0)
    assert f.with_rate(-0.2) == Filler(1.0, -0.2, 10.0)
    assert f.add_to_bound(3.0) == Filler(1.0, 0.1, 13.0)
    assert f == Filler(1.0, 0.1, 10.0)
    with pytest.raises(AttributeError):
        f.amount = 4.0  # type: ignore[misc]


def test_deposit_success_and_failure():
    f = Filler(9.5, 0.0, 10.0)
    ok = f.deposit(0.25)
    assert ok == Attempt(ok=True, filler=Filler(9.75, 0.0, 10.0), available=0.25)

    bad = f.deposit(1.0)
    assert not bad.ok
    assert bad.filler is None
    assert bad.available == 0.5


def test_withdraw_success_and_failure():
    f = Filler(4.0, 0.0, 10.0)
    ok = f.withdraw(4.0)
    assert ok.ok and ok.filler.amount == 0.0

    bad = f.withdraw(4.5)
    assert not bad.ok
    assert bad.available == 4.0


def test_deposit_then_withdraw_restores_amount():
    s = Filler(2.5, 0.01, 10.0)
    dep = s.deposit(3.25)
    assert dep.ok
    back = dep.filler.withdraw(3.25)
    assert back.ok
    assert back.filler == s

    wd = s.withdraw(1.5)
    assert wd.ok
    again = wd.filler.deposit(1.5)
    assert again.ok
    assert again.filler == s


def test_forced_transfers_ignore_limits():
    f = Filler(9.0, 0.0, 10.0)
    assert f.force_deposit(5.0).amount == 14.0
    assert f.force_withdraw(12.0).amount == -3.0


def test_is_empty_and_str():
    assert Filler(0.0, 0.1, 1.0).is_empty()
    assert not Filler(0.01, 0.1, 1.0).is_empty()
    assert str(Filler(3.14159, 0.0, 10.0)) == "3.14/10.00"
