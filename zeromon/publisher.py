"""
Remote telemetry transports for Adafruit IO.
MQTT is the default; the REST API is available for networks that block 1883.
"""
from typing import Protocol

import paho.mqtt.client as mqtt
import requests

from zeromon.config import MQTT_CLIENT_ID, logger
from zeromon.errors import PublishError


class Publisher(Protocol):
    def publish(self, topic: str, value: str) -> None: ...
    def close(self) -> None: ...


def feed_topic(user, room, key):
    """Topic for one value, e.g. jdoe/feeds/office-temperature"""
    return f"{user}/feeds/{room}-{key}"


class MqttPublisher:
    """Publishes over a persistent MQTT session"""

    def __init__(self, username, key, broker, port=1883, timeout=10.0, client=None):
        self.broker = broker
        self.port = port
        self.timeout = timeout
        if client is None:
            client = mqtt.Client(
                mqtt.CallbackAPIVersion.VERSION2,
                client_id=MQTT_CLIENT_ID,
                clean_session=False,
            )
        client.username_pw_set(username, key)
        self.client = client

    def connect(self):
        try:
            self.client.connect(self.broker, self.port)
        except OSError as e:
            raise PublishError(f"MQTT connect to {self.broker}:{self.port} failed: {e}") from e
        self.client.loop_start()
        logger.info(f"Publishing to {self.broker}:{self.port}")

    def publish(self, topic, value):
        logger.debug(f"Publishing '{value}' to {topic}")
        info = self.client.publish(topic, value, qos=0, retain=False)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"MQTT publish to {topic} failed: {mqtt.error_string(info.rc)}")
        try:
            info.wait_for_publish(timeout=self.timeout)
        except (RuntimeError, ValueError) as e:
            raise PublishError(f"MQTT publish to {topic} failed: {e}") from e
        if not info.is_published():
            raise PublishError(f"MQTT publish to {topic} timed out after {self.timeout}s")

    def close(self):
        self.client.loop_stop()
        self.client.disconnect()


class HttpPublisher:
    """Publishes through the Adafruit IO REST API"""

    def __init__(self, key, api_url, timeout=10.0, session=None):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"X-AIO-Key": key})

    def connect(self):
        logger.info(f"Publishing to {self.api_url}")

    def publish(self, topic, value):
        # topic is "<user>/feeds/<feed>", the same path segments the REST API uses
        url = f"{self.api_url}/{topic}/data"
        logger.debug(f"Publishing '{value}' to {url}")
        try:
            response = self.session.post(url, json={"value": value}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise PublishError(f"HTTP publish to {topic} failed: {e}") from e
        if not 200 <= response.status_code < 300:
            raise PublishError(f"API returned status {response.status_code}: {response.text}")

    def close(self):
        self.session.close()


def build_publisher(settings):
    """Publisher for the configured transport, None when publishing is disabled"""
    if not settings.publishing_enabled:
        logger.warning(
            f"Not publishing statistics.  Username: {settings.aio_user}, "
            f"Key: {'set' if settings.aio_key else ''}, Room: {settings.room}"
        )
        return None

    if settings.publish_transport == "http":
        publisher = HttpPublisher(settings.aio_key, settings.aio_api_url)
    else:
        publisher = MqttPublisher(
            settings.aio_user,
            settings.aio_key,
            settings.mqtt_broker,
            settings.mqtt_port,
        )
    publisher.connect()
    return publisher
