"""
Sensor acquisition: bounded retries against the bus and conversion of the
raw Celsius value to the reported unit.
"""
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Tuple

from zeromon.config import logger
from zeromon.environment import Reading

# DHT22 operating range
MIN_TEMPERATURE_C = -40.0
MAX_TEMPERATURE_C = 80.0


class SensorBus(Protocol):
    """
    One bus transaction against the sensor.
    Returns (temperature in Celsius, relative humidity) or raises.
    """
    def read(self) -> Tuple[Optional[float], Optional[float]]:
        ...


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 10
    delay: float = 0.0  # seconds between attempts

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")


def celsius_to_fahrenheit(value):
    return value * 1.8 + 32


def _valid(temperature, humidity):
    for value in (temperature, humidity):
        if value is None or math.isnan(value):
            return False
    if not 0.0 <= humidity <= 100.0:
        return False
    return MIN_TEMPERATURE_C <= temperature <= MAX_TEMPERATURE_C


class SensorReader:
    """
    Performs one acquisition: up to policy.max_attempts bus reads, first
    well-formed value wins. Never touches shared state.
    """
    def __init__(
        self,
        bus: SensorBus,
        policy: RetryPolicy = RetryPolicy(),
        units: str = "F",
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if units not in ("F", "C"):
            raise ValueError(f"Unsupported units: {units}")
        self.bus = bus
        self.policy = policy
        self.units = units
        self._clock = clock
        self._sleep = sleep
        # The bus is exclusive; overlapping acquisitions queue here
        self._bus_lock = threading.Lock()

    def acquire(self) -> Optional[Reading]:
        with self._bus_lock:
            raw = self._read_with_retry()
        if raw is None:
            return None

        temperature, humidity = raw
        logger.debug(f"acquire(): Temperature = {temperature:2.2f}°C, Humidity = {humidity:2.2f}%")
        if self.units == "F":
            temperature = celsius_to_fahrenheit(temperature)
        return Reading(
            temperature=float(temperature),
            humidity=float(humidity),
            timestamp=self._clock(),
            unit=self.units,
        )

    def _read_with_retry(self):
        attempts = self.policy.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                temperature, humidity = self.bus.read()
                valid = _valid(temperature, humidity)
            except Exception as e:
                logger.debug(f"Sensor read failed (attempt {attempt}/{attempts}): {e}")
            else:
                if valid:
                    return temperature, humidity
                logger.debug(
                    f"Sensor returned malformed value (attempt {attempt}/{attempts}): "
                    f"temperature={temperature}, humidity={humidity}"
                )
            if attempt < attempts and self.policy.delay:
                self._sleep(self.policy.delay)

        logger.warning(f"Sensor read failed after {attempts} attempts")
        return None
