import logging
import threading
import time

import pytest

from corex.cron import (
    RUN_ALWAYS,
    Cron,
    Schedule,
    SimpleJob,
    Task,
    at,
    every,
    every_at,
    once,
)


def _wait_until(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def cron():
    scheduler = Cron(logging.getLogger("tests.cron"))
    thread = threading.Thread(target=scheduler.run, daemon=True)
    thread.start()
    yield scheduler
    scheduler.stop()
    thread.join(2)


def _counting_job(name, calls):
    return SimpleJob(name, lambda: calls.append(name))


def test_once_runs_at_start_then_stops():
    schedule = once(100.0)
    assert schedule.next(50.0) == 100.0
    assert schedule.next(100.0) is None
    assert schedule.times == 0


def test_once_in_the_past_gives_nothing():
    schedule = once(10.0)
    assert schedule.next(20.0) is None
    assert schedule.times == 1


def test_at_limits_runs():
    schedule = at(100.0, 10.0, 2)
    assert schedule.next(50.0) == 100.0
    assert schedule.next(100.0) == 100.0 + 10.0
    assert schedule.next(200.0) is None
    assert schedule.times == 0


def test_every_repeats_from_now():
    schedule = every(5.0)
    now = time.time() + 1
    assert schedule.next(now) == now + 5.0
    assert schedule.next(now + 5.0) == now + 10.0
    assert schedule.times == RUN_ALWAYS


def test_every_at_waits_for_start():
    start = time.time() + 100
    schedule = every_at(start, 2.0)
    assert schedule.next(time.time()) == start
    assert schedule.next(start) == start + 2.0


def test_schedule_without_start_never_runs():
    assert Schedule().next(time.time()) is None
    assert Schedule(start=1.0, times=0, interval=1.0).next(0.0) is None


def test_simple_job_runs_function():
    calls = []
    job = _counting_job("job", calls)
    job.run()
    assert job.name == "job"
    assert calls == ["job"]


def test_add_without_running_counts_tasks():
    scheduler = Cron()
    scheduler.add(Task(SimpleJob("a", lambda: None), once(time.time() + 60)))
    scheduler.add(Task(SimpleJob("b", lambda: None), once(time.time() + 30)))
    assert len(scheduler) == 2


def test_cron_runs_future_once_job(cron):
    ran = threading.Event()
    cron.add(Task(SimpleJob("soon", ran.set), once(time.time() + 0.05)))
    assert ran.wait(3)
    assert _wait_until(lambda: len(cron) == 0)


def test_cron_runs_past_once_job_exactly_once(cron):
    calls = []
    cron.add(Task(_counting_job("past", calls), once(time.time() - 1)))
    assert _wait_until(lambda: len(calls) == 1)
    time.sleep(0.2)
    assert calls == ["past"]
    assert len(cron) == 0


def test_cron_runs_limited_repeats(cron):
    calls = []
    cron.add(Task(_counting_job("rep", calls), at(time.time(), 0.05, 3)))
    assert _wait_until(lambda: len(calls) == 3)
    time.sleep(0.2)
    assert len(calls) == 3
    assert len(cron) == 0


def test_cron_orders_tasks_by_time(cron):
    calls = []
    now = time.time()
    cron.add(Task(_counting_job("late", calls), once(now + 0.2)))
    cron.add(Task(_counting_job("early", calls), once(now + 0.05)))
    assert _wait_until(lambda: len(calls) == 2)
    assert calls == ["early", "late"]


def test_cron_remove_drops_task(cron):
    calls = []
    cron.add(Task(_counting_job("far", calls), once(time.time() + 3600)))
    assert len(cron) == 1
    cron.remove("far")
    assert _wait_until(lambda: len(cron) == 0)
    assert calls == []


def test_cron_logs_failed_job(cron, caplog):
    caplog.set_level(logging.INFO, logger="tests.cron")

    def boom():
        raise RuntimeError("boom")

    cron.add(Task(SimpleJob("bad", boom), once(time.time() - 1)))
    assert _wait_until(
        lambda: any("Run job [bad] failed: boom" in r.getMessage() for r in caplog.records)
    )
    assert len(cron) == 0


def test_stop_ends_run():
    scheduler = Cron()
    thread = threading.Thread(target=scheduler.run, daemon=True)
    thread.start()
    time.sleep(0.05)
    scheduler.stop()
    thread.join(2)
    assert not thread.is_alive()