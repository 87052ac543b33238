# tests/test_overdue_policy.py

from __future__ import annotations

from datetime import timedelta

from taskflow.tasks.overdue_policy import (
    CooldownPolicy,
    OncePerOverdueSet,
    RepeatEveryTick,
    build_overdue_policy,
)

from .fakes import T0


def _notify(policy, ids, now=T0) -> bool:
    """Ask, and record as a delivered alert when the answer is yes."""
    if policy.should_notify(ids, now):
        policy.record(ids, now)
        return True
    return False


def test_repeat_every_tick() -> None:
    p = RepeatEveryTick()
    assert _notify(p, ["a"])
    assert _notify(p, ["a"])
    assert not _notify(p, [])


def test_once_per_overdue_set() -> None:
    p = OncePerOverdueSet()
    assert _notify(p, ["a", "b"])
    assert not _notify(p, ["a", "b"])
    # One resolved: still nothing new.
    assert not _notify(p, ["a"])
    # A new task became overdue.
    assert _notify(p, ["a", "c"])
    # Everything resolved, then "a" is overdue again.
    assert not _notify(p, [])
    assert _notify(p, ["a"])


def test_once_per_overdue_set_only_consumed_by_record() -> None:
    p = OncePerOverdueSet()
    assert p.should_notify(["a"], T0)
    assert p.should_notify(["a"], T0)
    p.record(["a"], T0)
    assert not p.should_notify(["a"], T0)


def test_cooldown() -> None:
    p = CooldownPolicy(minutes=60)
    assert _notify(p, ["a"])
    assert not _notify(p, ["a"], T0 + timedelta(minutes=59))
    assert _notify(p, ["a"], T0 + timedelta(minutes=60))
    assert not _notify(p, [], T0 + timedelta(hours=5))


def test_cooldown_starts_at_record() -> None:
    p = CooldownPolicy(minutes=60)
    assert p.should_notify(["a"], T0)
    assert p.should_notify(["a"], T0 + timedelta(minutes=5))
    p.record(["a"], T0 + timedelta(minutes=5))
    assert not p.should_notify(["a"], T0 + timedelta(minutes=64))
    assert p.should_notify(["a"], T0 + timedelta(minutes=65))


def test_build_overdue_policy() -> None:
    assert isinstance(build_overdue_policy("repeat"), RepeatEveryTick)
    assert isinstance(build_overdue_policy("once"), OncePerOverdueSet)
    assert isinstance(build_overdue_policy("cooldown", cooldown_minutes=5), CooldownPolicy)
    assert isinstance(build_overdue_policy("bogus"), RepeatEveryTick)
