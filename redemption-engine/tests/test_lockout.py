"""
Tests for `domain/lockout.py` and `services/lockout_service.py`.

Covers contract rules:
- Reaching the threshold within the window engages a lockout of fixed duration.
- A failure outside the window starts a fresh count.
- Lockouts expire lazily; the next failure after expiry starts a fresh count.
- remaining_minutes rounds up and never drops below 1 while locked.
- Counters are keyed per (business, identifier); success clears them.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

from domain.lockout import LockoutCounter, LockoutDecision, LockoutPolicy, decide, register_failure
from repositories.memory import InMemoryLockoutStore, InMemoryStore
from services.lockout_service import LockoutTracker

UTC = timezone.utc
NOW = datetime(2026, 3, 18, 12, 0, tzinfo=UTC)
POLICY = LockoutPolicy()
BUSINESS_A = UUID("00000000-0000-0000-0000-0000000000b1")
BUSINESS_B = UUID("00000000-0000-0000-0000-0000000000b2")


def test_register_failure_counts_up_to_lockout() -> None:
    counter = None
    for i in range(1, POLICY.threshold):
        counter = register_failure(counter, NOW + timedelta(seconds=i), POLICY)
        assert counter.failed_count == i
        assert counter.locked_until is None

    locked = register_failure(counter, NOW + timedelta(minutes=1), POLICY)
    assert locked.failed_count == POLICY.threshold
    assert locked.locked_until == NOW + timedelta(minutes=1) + POLICY.duration


def test_failure_outside_window_starts_fresh_count() -> None:
    counter = LockoutCounter(failed_count=4, window_started_at=NOW)

    later = NOW + POLICY.window
    fresh = register_failure(counter, later, POLICY)

    assert fresh.failed_count == 1
    assert fresh.window_started_at == later


def test_failure_while_locked_leaves_counter_unchanged() -> None:
    counter = LockoutCounter(failed_count=5, window_started_at=NOW, locked_until=NOW + timedelta(minutes=30))

    assert register_failure(counter, NOW + timedelta(minutes=5), POLICY) is counter


def test_failure_after_lockout_expiry_starts_fresh_count() -> None:
    counter = LockoutCounter(failed_count=5, window_started_at=NOW, locked_until=NOW + timedelta(minutes=30))

    fresh = register_failure(counter, NOW + timedelta(minutes=31), POLICY)

    assert fresh.failed_count == 1
    assert fresh.locked_until is None


def test_decide() -> None:
    assert decide(None, NOW, POLICY) == LockoutDecision(allowed=True, remaining_attempts=5)

    partial = LockoutCounter(failed_count=3, window_started_at=NOW)
    assert decide(partial, NOW, POLICY).remaining_attempts == 2

    locked = LockoutCounter(failed_count=5, window_started_at=NOW, locked_until=NOW + timedelta(minutes=30))
    decision = decide(locked, NOW + timedelta(minutes=1), POLICY)
    assert not decision.allowed
    assert decision.lockout_expires_at == NOW + timedelta(minutes=30)
    assert decide(locked, NOW + timedelta(minutes=30), POLICY).allowed


def test_remaining_minutes_rounds_up() -> None:
    decision = LockoutDecision(allowed=False, remaining_attempts=0, lockout_expires_at=NOW + timedelta(minutes=30))

    assert decision.remaining_minutes(NOW) == 30
    assert decision.remaining_minutes(NOW + timedelta(seconds=1)) == 30
    assert decision.remaining_minutes(NOW + timedelta(minutes=29, seconds=59)) == 1
    assert LockoutDecision(allowed=True, remaining_attempts=5).remaining_minutes(NOW) is None


def test_tracker_keys_by_business_and_identifier() -> None:
    tracker = LockoutTracker(InMemoryLockoutStore(InMemoryStore()))

    for _ in range(POLICY.threshold):
        tracker.record_failure(BUSINESS_A, "WF-2024-000999", NOW)

    assert not tracker.check(BUSINESS_A, "WF-2024-000999", NOW).allowed
    assert tracker.check(BUSINESS_B, "WF-2024-000999", NOW).allowed
    assert tracker.check(BUSINESS_A, "WF-2024-000998", NOW).allowed


def test_tracker_success_clears_counter() -> None:
    tracker = LockoutTracker(InMemoryLockoutStore(InMemoryStore()))

    for _ in range(POLICY.threshold - 1):
        decision = tracker.record_failure(BUSINESS_A, "WF-2024-000123", NOW)
    assert decision.remaining_attempts == 1

    tracker.record_success(BUSINESS_A, "WF-2024-000123")

    assert tracker.check(BUSINESS_A, "WF-2024-000123", NOW).remaining_attempts == POLICY.threshold


def test_tracker_custom_policy() -> None:
    policy = LockoutPolicy(threshold=2, window=timedelta(minutes=1), duration=timedelta(minutes=5))
    tracker = LockoutTracker(InMemoryLockoutStore(InMemoryStore()), policy)

    assert tracker.record_failure(BUSINESS_A, "X", NOW).allowed
    decision = tracker.record_failure(BUSINESS_A, "X", NOW)

    assert not decision.allowed
    assert decision.lockout_expires_at == NOW + timedelta(minutes=5)
