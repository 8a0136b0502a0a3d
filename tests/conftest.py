"""Shared fakes for the bus, display and publish transport."""

from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional, Tuple

import pytest

from zeromon.config import Settings
from zeromon.errors import PublishError, SensorError


class FakeBus:
    """Replays scripted results; an Exception instance is raised instead of returned."""

    def __init__(self, results=None, default=None):
        self.results = list(results or [])
        self.default = default
        self.calls = 0
        self._lock = threading.Lock()

    def read(self):
        with self._lock:
            self.calls += 1
            result = self.results.pop(0) if self.results else self.default
        if result is None:
            raise SensorError("no response")
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        pass


class FakeDisplay:
    def __init__(self, fail_lines: Tuple[int, ...] = (), delay: float = 0.0, fail_backlight: bool = False):
        self.fail_lines = fail_lines
        self.fail_backlight = fail_backlight
        self.delay = delay
        self.messages: List[Tuple[int, str]] = []
        self.backlight: Optional[bool] = None
        self.backlight_calls: List[bool] = []
        self.closed = False

    def show_message(self, text, line):
        if self.delay:
            time.sleep(self.delay)
        if line in self.fail_lines:
            raise OSError("i2c write failed")
        self.messages.append((line, text))

    def backlight_on(self):
        self.backlight = True
        self.backlight_calls.append(True)

    def backlight_off(self):
        if self.fail_backlight:
            raise OSError("i2c write failed")
        self.backlight = False
        self.backlight_calls.append(False)

    def clear(self):
        self.messages.clear()

    def close(self):
        self.closed = True


class FakePublisher:
    def __init__(self, fail_topics: Tuple[str, ...] = ()):
        self.fail_topics = fail_topics
        self.published: List[Tuple[str, str]] = []
        self.closed = False
        self._lock = threading.Lock()

    def publish(self, topic, value):
        if any(topic.endswith(t) for t in self.fail_topics):
            raise PublishError(f"broker rejected {topic}")
        with self._lock:
            self.published.append((topic, value))

    def close(self):
        self.closed = True


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        room="office",
        aio_user="jdoe",
        aio_key="secret",
        pidfile=None,
        acquire_interval=0.05,
        publish_interval=0.3,
    )
