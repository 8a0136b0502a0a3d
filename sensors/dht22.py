"""
DHT22 temperature/humidity sensor on a GPIO pin.
"""
from zeromon.errors import SensorError


class DHT22Bus:
    """
    One read() is one bus transaction. The DHT22 fails transient reads
    regularly (checksum, timing); those surface as SensorError.
    """
    def __init__(self, pin=4):
        import board
        import adafruit_dht

        self.pin = pin
        try:
            self._device = adafruit_dht.DHT22(getattr(board, f"D{pin}"), use_pulseio=False)
        except AttributeError as e:
            raise SensorError(f"No GPIO pin D{pin} on this board") from e

    def read(self):
        try:
            return self._device.temperature, self._device.humidity
        except RuntimeError as e:
            raise SensorError(str(e)) from e

    def close(self):
        self._device.exit()
