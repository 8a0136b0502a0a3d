"""Tests for the shared environment and its readers-writer lock."""

from __future__ import annotations

import threading

from conftest import wait_until
from zeromon.environment import NO_READING, Reading, ReadWriteLock, SharedEnvironment


def test_new_environment_holds_sentinel() -> None:
    environment = SharedEnvironment()

    reading = environment.read()

    assert reading is NO_READING
    assert reading.timestamp == 0
    assert not reading.is_fresh
    assert environment.age() is None


def test_write_replaces_reading_wholesale() -> None:
    environment = SharedEnvironment()
    first = Reading(temperature=70.0, humidity=30.0, timestamp=100.0)
    second = Reading(temperature=71.5, humidity=31.0, timestamp=105.0)

    environment.write(first)
    environment.write(second)

    assert environment.read() == second
    assert environment.age(now=110.0) == 5.0


def test_concurrent_reads_never_observe_mixed_writes() -> None:
    environment = SharedEnvironment()
    stop = threading.Event()
    torn: list[Reading] = []

    def writer() -> None:
        i = 1
        while not stop.is_set():
            # humidity always mirrors temperature within one write
            environment.write(Reading(temperature=float(i), humidity=float(i), timestamp=float(i)))
            i += 1

    def reader() -> None:
        while not stop.is_set():
            reading = environment.read()
            if reading.is_fresh and not (reading.temperature == reading.humidity == reading.timestamp):
                torn.append(reading)

    threads = [threading.Thread(target=writer)]
    threads += [threading.Thread(target=reader) for _ in range(4)]
    for thread in threads:
        thread.start()
    wait_until(lambda: environment.read().timestamp > 1000, timeout=1.0)
    stop.set()
    for thread in threads:
        thread.join(timeout=2.0)

    assert torn == []


def test_readers_share_the_lock() -> None:
    lock = ReadWriteLock()
    lock.acquire_read()
    entered = threading.Event()

    def second_reader() -> None:
        lock.acquire_read()
        entered.set()
        lock.release_read()

    thread = threading.Thread(target=second_reader)
    thread.start()
    try:
        assert entered.wait(1.0)
    finally:
        lock.release_read()
        thread.join(timeout=1.0)


def test_writer_excludes_readers_until_released() -> None:
    lock = ReadWriteLock()
    lock.acquire_write()
    entered = threading.Event()

    def reader() -> None:
        lock.acquire_read()
        entered.set()
        lock.release_read()

    thread = threading.Thread(target=reader)
    thread.start()
    assert not entered.wait(0.1)
    lock.release_write()
    assert entered.wait(1.0)
    thread.join(timeout=1.0)
