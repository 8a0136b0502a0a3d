"""
Consumer adapters: each takes a snapshot of the shared environment and
forwards it to one sink. Failures are logged and stay inside the adapter.
"""
from datetime import datetime

import humanize

from zeromon.config import logger
from zeromon.display import LINE_1, LINE_2, DisplayHandle
from zeromon.environment import Reading, SharedEnvironment
from zeromon.errors import DisplayError, PublishError
from zeromon.metrics import MetricsRegistry
from zeromon.publisher import Publisher, feed_topic


def format_temperature(reading: Reading) -> str:
    return f"Temp: {reading.temperature:.1f}{reading.unit}     "


def format_humidity(reading: Reading) -> str:
    return f"Hum : {reading.humidity:.1f}%     "


def consume(environment: SharedEnvironment, adapter) -> bool:
    """
    Forward the current snapshot to adapter unless no reading exists yet.
    Returns True when the adapter was called.
    """
    reading = environment.read()
    if not reading.is_fresh:
        logger.debug(f"{adapter.name}: no reading yet")
        return False
    adapter(reading)
    return True


class DisplayConsumer:
    name = "display"

    def __init__(self, display: DisplayHandle):
        self.display = display

    def __call__(self, reading: Reading) -> None:
        for text, line in ((format_temperature(reading), LINE_1), (format_humidity(reading), LINE_2)):
            try:
                self.display.write_message(text, line)
            except DisplayError as e:
                logger.error(f"Display write failed: {e}")


class MetricsConsumer:
    name = "metrics"

    def __init__(self, metrics: MetricsRegistry):
        self.metrics = metrics

    def __call__(self, reading: Reading) -> None:
        checked = datetime.fromtimestamp(reading.timestamp)
        logger.info(
            f"Updated: Temperature = {reading.temperature:.1f}°{reading.unit}, "
            f"Humidity = {reading.humidity:.1f}%, "
            f"Last Checked = {humanize.naturaltime(datetime.now() - checked)}, "
            f"Unix = {int(reading.timestamp)}"
        )
        self.metrics.update(reading)


class PublishConsumer:
    name = "publish"

    def __init__(self, publisher: Publisher, user: str, room: str):
        self.publisher = publisher
        self.user = user
        self.room = room

    def __call__(self, reading: Reading) -> None:
        values = (
            ("temperature", f"{reading.temperature:.1f}"),
            ("humidity", f"{reading.humidity:.1f}"),
        )
        for key, value in values:
            topic = feed_topic(self.user, self.room, key)
            try:
                self.publisher.publish(topic, value)
            except PublishError as e:
                logger.error(f"Publish failed: {e}")
