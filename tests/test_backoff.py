import pytest

from corex.backoff import (
    Backoff,
    ExponentialBackoffManager,
    JitteredBackoffManager,
    WaitTimeout,
    exponential_backoff,
    jitter,
)
from corex.group import Cancelled, Context


def test_jitter_stays_within_bounds():
    for _ in range(100):
        value = jitter(2.0, 0.5)
        assert 2.0 <= value <= 3.0


def test_jitter_non_positive_factor_uses_one():
    for _ in range(100):
        value = jitter(1.0, 0.0)
        assert 1.0 <= value <= 2.0


def test_step_without_steps_returns_duration_unchanged():
    b = Backoff(duration=0.5, factor=3.0, steps=0)
    assert b.step() == 0.5
    assert b.duration == 0.5
    assert b.steps == 0


def test_step_grows_duration_and_counts_down():
    b = Backoff(duration=0.01, factor=2.0, steps=3)
    first = b.step()
    assert first == 0.01
    assert b.steps == 2
    assert b.duration == pytest.approx(0.01 * 2.0)
    second = b.step()
    assert second > first


def test_step_cap_stops_growth():
    b = Backoff(duration=1.0, factor=10.0, steps=5, cap=3.0)
    b.step()
    assert b.duration == 3.0
    assert b.steps == 0
    assert b.step() == 3.0


def test_step_with_jitter_is_not_below_duration():
    b = Backoff(duration=1.0, jitter=0.5, steps=2)
    value = b.step()
    assert 1.0 <= value <= 1.5


def test_exponential_backoff_succeeds_early():
    calls = []

    def condition():
        calls.append(1)
        return len(calls) == 2

    b = Backoff(duration=0.001, steps=5)
    assert exponential_backoff(b, condition) is None
    assert len(calls) == 2
    assert b.steps == 5


def test_exponential_backoff_times_out_after_steps():
    calls = []

    def condition():
        calls.append(1)
        return False

    with pytest.raises(WaitTimeout):
        exponential_backoff(Backoff(duration=0.001, steps=4), condition)
    assert len(calls) == 4


def test_exponential_backoff_zero_steps_never_calls():
    calls = []
    with pytest.raises(WaitTimeout):
        exponential_backoff(Backoff(duration=0.001, steps=0), lambda: calls.append(1) or True)
    assert calls == []


def test_exponential_backoff_does_not_modify_argument():
    b = Backoff(duration=0.001, factor=2.0, steps=3)
    with pytest.raises(WaitTimeout):
        exponential_backoff(b, lambda: False)
    assert b.steps == 3
    assert b.duration == 0.001


def test_exponential_backoff_propagates_condition_error():
    def condition():
        raise KeyError("boom")

    with pytest.raises(KeyError):
        exponential_backoff(Backoff(duration=0.001, steps=3), condition)


def test_exponential_backoff_cancelled_context():
    ctx = Context()
    ctx.cancel()
    calls = []
    with pytest.raises(Cancelled):
        exponential_backoff(Backoff(duration=0.001, steps=3), lambda: calls.append(1) or False, ctx)
    assert calls == []


def test_exponential_backoff_cancel_during_sleep():
    ctx = Context()
    calls = []

    def condition():
        calls.append(1)
        ctx.cancel()
        return False

    with pytest.raises(Cancelled):
        exponential_backoff(Backoff(duration=5.0, steps=3), condition, ctx)
    assert len(calls) == 1


def test_exponential_backoff_manager_timer_fires_and_is_reused():
    manager = ExponentialBackoffManager(0.01, 0.05, 10.0, 2.0, 0.0)
    first = manager.backoff()
    assert first.wait(2.0) is True
    second = manager.backoff()
    assert second is first
    assert second.wait(2.0) is True


def test_jittered_backoff_manager_timer_fires_and_is_reused():
    manager = JitteredBackoffManager(0.01, 0.5)
    first = manager.backoff()
    assert first.wait(2.0) is True
    second = manager.backoff()
    assert second is first
    assert second.wait(2.0) is True