"""Tests for periodic tasks and the multi-cadence scheduler."""

from __future__ import annotations

import threading
import time

import pytest

from conftest import wait_until
from zeromon.scheduler import PeriodicTask, Scheduler


def test_task_fires_immediately_and_repeats() -> None:
    calls: list[float] = []
    task = PeriodicTask("tick", 0.02, lambda: calls.append(time.monotonic()))

    task.start()
    try:
        assert wait_until(lambda: len(calls) >= 3)
    finally:
        task.stop()


def test_stop_prevents_new_fires() -> None:
    calls: list[int] = []
    task = PeriodicTask("tick", 0.02, lambda: calls.append(1))
    task.start()
    wait_until(lambda: len(calls) >= 2)

    task.stop()
    count = len(calls)
    time.sleep(0.1)

    assert len(calls) == count
    assert task.stop_event.is_set()


def test_stop_waits_for_in_flight_work() -> None:
    started = threading.Event()
    finished = threading.Event()

    def slow() -> None:
        started.set()
        time.sleep(0.2)
        finished.set()

    task = PeriodicTask("slow", 10.0, slow)
    task.start()
    assert started.wait(1.0)

    task.stop(wait=True)

    assert finished.is_set()
    assert task.in_flight == 0


def test_exception_in_work_does_not_stop_the_loop() -> None:
    calls: list[int] = []

    def flaky() -> None:
        calls.append(1)
        raise RuntimeError("display write failed")

    task = PeriodicTask("flaky", 0.02, flaky)
    task.start()
    try:
        assert wait_until(lambda: len(calls) >= 3)
    finally:
        task.stop()


def test_slow_firing_does_not_delay_the_timer() -> None:
    release = threading.Event()
    task = PeriodicTask("hung", 0.02, lambda: release.wait(2.0), max_workers=4)
    task.start()
    try:
        # fires keep being dispatched while earlier ones are still blocked
        assert wait_until(lambda: task.fire_count >= 3)
        assert task.in_flight >= 2
    finally:
        release.set()
        task.stop()


def test_hung_work_does_not_build_a_backlog() -> None:
    release = threading.Event()
    task = PeriodicTask("hung", 0.01, lambda: release.wait(5.0), max_workers=2)
    task.start()
    try:
        time.sleep(0.5)

        assert task.in_flight <= 2
        assert task.fire_count == 2
        assert task.skipped_count > 0
    finally:
        release.set()
        task.stop()


def test_busy_ticks_resume_once_work_completes() -> None:
    release = threading.Event()
    task = PeriodicTask("hung", 0.02, lambda: release.wait(5.0), max_workers=1)
    task.start()
    try:
        assert wait_until(lambda: task.skipped_count >= 2)
        release.set()

        assert wait_until(lambda: task.fire_count >= 3)
    finally:
        release.set()
        task.stop()


def test_stop_timeout_bounds_the_wait_for_hung_work() -> None:
    release = threading.Event()
    started = threading.Event()

    def hung() -> None:
        started.set()
        release.wait(5.0)

    task = PeriodicTask("hung", 10.0, hung)
    task.start()
    assert started.wait(1.0)

    began = time.monotonic()
    task.stop(wait=True, timeout=0.2)
    elapsed = time.monotonic() - began
    release.set()

    assert elapsed < 1.0
    assert task.stop_event.is_set()


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PeriodicTask("bad", 0, lambda: None)


def test_loops_run_independently() -> None:
    scheduler = Scheduler()
    release = threading.Event()
    fast: list[int] = []
    scheduler.every("blocked", 0.02, lambda: release.wait(2.0), max_workers=1)
    scheduler.every("fast", 0.02, lambda: fast.append(1))

    scheduler.start()
    try:
        assert wait_until(lambda: len(fast) >= 5)
    finally:
        release.set()
        scheduler.stop()

    assert scheduler.stopped
    assert all(task.stop_event.is_set() for task in scheduler.tasks)


def test_cadences_are_respected() -> None:
    scheduler = Scheduler()
    fast: list[int] = []
    slow: list[int] = []
    scheduler.every("fast", 0.02, lambda: fast.append(1))
    scheduler.every("slow", 0.2, lambda: slow.append(1))

    scheduler.start()
    time.sleep(0.3)
    scheduler.stop()

    # slow fires at 0.0 and 0.2; fast fires many times in the same window
    assert 1 <= len(slow) <= 3
    assert len(fast) > len(slow) * 3


def test_task_added_after_start_runs() -> None:
    scheduler = Scheduler()
    scheduler.start()
    calls: list[int] = []
    try:
        scheduler.every("late", 0.02, lambda: calls.append(1))
        assert wait_until(lambda: len(calls) >= 1)
    finally:
        scheduler.stop()
