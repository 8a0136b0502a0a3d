"""
Wires the sensor, shared environment, consumers and scheduler together.
One Monitor is built per process run and owns every piece of shared state.
"""
import time
from functools import partial

from zeromon import __version__
from zeromon.config import logger
from zeromon.consumers import DisplayConsumer, MetricsConsumer, PublishConsumer, consume
from zeromon.display import LINE_1, LINE_2, ConsoleDisplay, DisplayHandle, I2CLcd
from zeromon.environment import SharedEnvironment
from zeromon.errors import DisplayError
from zeromon.metrics import MetricsRegistry, create_app
from zeromon.reader import RetryPolicy, SensorReader
from zeromon.scheduler import Scheduler


def build_bus(settings):
    """Sensor bus for the configured mode"""
    if settings.simulate:
        from sensors.simulated import SimulatedBus
        return SimulatedBus()
    from sensors.dht22 import DHT22Bus
    return DHT22Bus(pin=settings.sensor_pin)


def build_display(settings):
    """Character display for the configured mode; raises DisplayError when the LCD is unusable"""
    if settings.simulate:
        return ConsoleDisplay()
    return I2CLcd(bus=settings.lcd_bus, address=settings.lcd_address)


class Monitor:
    def __init__(self, settings, bus, display, publisher=None, clock=time.time):
        self.settings = settings
        self.environment = SharedEnvironment()
        self.reader = SensorReader(
            bus,
            RetryPolicy(max_attempts=settings.sensor_retries, delay=settings.sensor_retry_delay),
            units=settings.units,
            clock=clock,
        )
        self.display = DisplayHandle(display)
        self.metrics = MetricsRegistry(settings.room)
        self.publisher = publisher
        self.scheduler = Scheduler()
        self._build_loops()

    def _build_loops(self):
        settings = self.settings
        self.scheduler.every("acquire", settings.acquire_interval, self.acquire_once)
        self.scheduler.every(
            "display", settings.acquire_interval,
            partial(consume, self.environment, DisplayConsumer(self.display)),
        )
        self.scheduler.every(
            "metrics", settings.acquire_interval,
            partial(consume, self.environment, MetricsConsumer(self.metrics)),
        )
        if self.publisher is not None:
            self.scheduler.every(
                "publish", settings.publish_interval,
                partial(
                    consume, self.environment,
                    PublishConsumer(self.publisher, settings.aio_user, settings.room),
                ),
            )

    def acquire_once(self):
        """One acquisition tick; the environment is only written on success"""
        reading = self.reader.acquire()
        if reading is None:
            return False
        self.environment.write(reading)
        return True

    def show_banner(self):
        """Startup screen. A DisplayError here is fatal to the caller."""
        self.display.backlight_off()
        self.display.write_message("ZeroMon", LINE_1)
        self.display.write_message(f"v{__version__}", LINE_2)
        self.display.backlight_on()

    def create_app(self):
        return create_app(self.metrics, self.environment)

    def start(self):
        self.scheduler.start()

    def shutdown(self, timeout=None):
        """Stop the loops, let in-flight work finish, then leave the display dark"""
        self.scheduler.stop(wait=True, timeout=timeout)
        try:
            self.display.backlight_off()
        except DisplayError as e:
            logger.error(f"Backlight off failed: {e}")
        finally:
            try:
                self.display.close()
            except DisplayError as e:
                logger.error(f"Display close failed: {e}")
        if self.publisher is not None:
            try:
                self.publisher.close()
            except Exception as e:
                logger.warning(f"Publisher close failed: {e}")
