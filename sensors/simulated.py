"""
Simulated sensor for running without hardware.
"""
import random

from zeromon.errors import SensorError


class SimulatedBus:
    """Random walk around a starting point, failing a fraction of reads like a real DHT22"""

    def __init__(self, temperature=21.0, humidity=45.0, failure_rate=0.2, rng=None):
        self.temperature = temperature
        self.humidity = humidity
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()

    def read(self):
        if self._rng.random() < self.failure_rate:
            raise SensorError("checksum did not validate")
        self.temperature = min(max(self.temperature + self._rng.uniform(-0.2, 0.2), -40.0), 80.0)
        self.humidity = min(max(self.humidity + self._rng.uniform(-0.5, 0.5), 0.0), 100.0)
        return round(self.temperature, 1), round(self.humidity, 1)

    def close(self):
        pass
