"""
Multi-cadence scheduling.

Each PeriodicTask owns a timer thread and a private worker pool. The timer
only dispatches; work runs in the pool, so a slow or hung firing never holds
back the next tick of its own task or any other task.
"""
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from typing import Callable, List, Optional, Set

from zeromon.config import logger


class PeriodicTask:
    """
    Fires `work` immediately on start and then every `interval` seconds
    until the stop event is set. Up to max_workers firings may overlap;
    a tick that finds them all busy is skipped, not queued.
    """
    def __init__(
        self,
        name: str,
        interval: float,
        work: Callable[[], None],
        stop_event: Optional[threading.Event] = None,
        max_workers: int = 2,
    ):
        if interval <= 0:
            raise ValueError(f"{name}: interval must be positive")
        self.name = name
        self.interval = interval
        self.work = work
        self.stop_event = stop_event or threading.Event()
        self.max_workers = max_workers
        self.fire_count = 0
        self.skipped_count = 0
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._in_flight: Set[Future] = set()
        self._in_flight_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        if self._thread is not None:
            raise RuntimeError(f"{self.name} already started")
        self._thread = threading.Thread(target=self._timer_loop, name=f"{self.name}-timer", daemon=True)
        self._thread.start()
        logger.info(f"Started {self.name} loop every {self.interval}s")

    @property
    def in_flight(self):
        with self._in_flight_lock:
            return len(self._in_flight)

    def _timer_loop(self):
        deadline = time.monotonic()
        while not self.stop_event.is_set():
            self._dispatch()
            deadline += self.interval
            now = time.monotonic()
            if deadline < now:
                # Fell behind (suspended process, clock jump); skip the missed ticks
                missed = int((now - deadline) // self.interval) + 1
                deadline += missed * self.interval
            if self.stop_event.wait(deadline - now):
                break

    def _dispatch(self):
        if self.in_flight >= self.max_workers:
            self.skipped_count += 1
            logger.warning(f"{self.name}: all {self.max_workers} workers busy, skipping this tick")
            return
        try:
            future = self._executor.submit(self._run_once)
        except RuntimeError:
            # Executor already shut down
            return
        self.fire_count += 1
        with self._in_flight_lock:
            self._in_flight.add(future)
        future.add_done_callback(self._finished)

    def _run_once(self):
        try:
            self.work()
        except Exception as e:
            logger.error(f"{self.name} failed: {e}", exc_info=True)

    def _finished(self, future):
        with self._in_flight_lock:
            self._in_flight.discard(future)

    def stop(self, wait=True, timeout=None):
        """
        Stop scheduling new firings. With wait=True, block until in-flight
        firings complete, giving up after timeout seconds.
        """
        self.stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        with self._in_flight_lock:
            pending = set(self._in_flight)
        if wait and pending:
            _, not_done = wait_futures(pending, timeout=timeout)
            if not_done:
                logger.warning(f"{self.name}: {len(not_done)} firing(s) still running after {timeout}s")
        # A hung worker must not block shutdown
        self._executor.shutdown(wait=False, cancel_futures=True)


class Scheduler:
    """Owns a set of independently clocked PeriodicTasks sharing one stop event"""

    def __init__(self):
        self.stop_event = threading.Event()
        self.tasks: List[PeriodicTask] = []
        self._started = False

    def every(self, name, interval, work, max_workers=2):
        task = PeriodicTask(name, interval, work, stop_event=self.stop_event, max_workers=max_workers)
        self.tasks.append(task)
        if self._started:
            task.start()
        return task

    def start(self):
        self._started = True
        for task in self.tasks:
            task.start()

    @property
    def stopped(self):
        return self.stop_event.is_set()

    def stop(self, wait=True, timeout=None):
        """Cooperative shutdown: no new ticks, in-flight work may finish"""
        self.stop_event.set()
        for task in self.tasks:
            task.stop(wait=wait, timeout=timeout)
        logger.info("Scheduler stopped")
