"""
Shared environment state: the latest accepted reading and the lock that
guards it. One writer (the acquisition loop), many readers (the consumers).
"""
import threading
import time
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Reading:
    temperature: float
    humidity: float
    timestamp: float  # unix seconds, 0 means no reading yet
    unit: str = "F"

    @property
    def is_fresh(self) -> bool:
        return self.timestamp > 0


# Sentinel held until the first successful acquisition
NO_READING = Reading(temperature=0.0, humidity=0.0, timestamp=0.0)


class ReadWriteLock:
    """
    Readers share the lock, a writer holds it alone.
    Writers are preferred once waiting so a stream of readers cannot starve them.
    """
    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()


class SharedEnvironment:
    """
    Holds exactly one current Reading.
    write() replaces it wholesale, read() returns a consistent snapshot.
    """
    def __init__(self, initial: Reading = NO_READING):
        self._lock = ReadWriteLock()
        self._reading = initial

    def write(self, reading: Reading) -> None:
        self._lock.acquire_write()
        try:
            self._reading = reading
        finally:
            self._lock.release_write()

    def read(self) -> Reading:
        self._lock.acquire_read()
        try:
            return self._reading
        finally:
            self._lock.release_read()

    def age(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds since the current reading was taken, None before the first one"""
        reading = self.read()
        if not reading.is_fresh:
            return None
        if now is None:
            now = time.time()
        return max(0.0, now - reading.timestamp)
