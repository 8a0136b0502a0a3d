"""
Configuration and constants for the environment monitor.
Values come from ZEROMON_* environment variables (a .env file is honoured)
and can be overridden from the command line.
"""
import os
import logging
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("zeromon")

LOG_DIR = "logs"
LOG_FILE = os.path.join(LOG_DIR, "zeromon.log")
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

ENV_PREFIX = "ZEROMON_"

# Verbosity scale of the --loglevel flag, 0=emergency through 6=debug
LOG_LEVELS = {
    0: logging.CRITICAL,
    1: logging.CRITICAL,
    2: logging.ERROR,
    3: logging.WARNING,
    4: logging.WARNING,  # notify
    5: logging.INFO,
    6: logging.DEBUG,
}

_logging_configured = False


def _env(name, default=None):
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _env_int(name, default):
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value, 0)
    except ValueError:
        logger.warning(f"Invalid {ENV_PREFIX}{name} value: {value}")
        return default


def _env_float(name, default):
    value = _env(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid {ENV_PREFIX}{name} value: {value}")
        return default


def _env_bool(name, default=False):
    value = _env(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


# Metrics endpoint
# https://github.com/prometheus/prometheus/wiki/Default-port-allocations
DEFAULT_PORT = 9204

# Cadences in seconds
DEFAULT_ACQUIRE_INTERVAL = 5.0
DEFAULT_PUBLISH_INTERVAL = 30.0

# Sensor read retry settings
DEFAULT_SENSOR_RETRIES = 10
DEFAULT_SENSOR_RETRY_DELAY = 0.0
DEFAULT_SENSOR_PIN = 4  # GPIO 4 (Pin 7)

# Character display on a PCF8574 backpack
DEFAULT_LCD_BUS = 1
DEFAULT_LCD_ADDRESS = 0x27

# Adafruit IO
DEFAULT_MQTT_BROKER = "io.adafruit.com"
DEFAULT_MQTT_PORT = 1883
DEFAULT_AIO_API_URL = "https://io.adafruit.com/api/v2"
MQTT_CLIENT_ID = "zeromon"

DEFAULT_PIDFILE = "/var/run/zeromon.pid"


@dataclass(frozen=True)
class Settings:
    room: str = ""
    aio_user: str = ""
    aio_key: str = ""
    port: int = DEFAULT_PORT
    log_level: int = 4
    pidfile: Optional[str] = DEFAULT_PIDFILE
    acquire_interval: float = DEFAULT_ACQUIRE_INTERVAL
    publish_interval: float = DEFAULT_PUBLISH_INTERVAL
    sensor_retries: int = DEFAULT_SENSOR_RETRIES
    sensor_retry_delay: float = DEFAULT_SENSOR_RETRY_DELAY
    sensor_pin: int = DEFAULT_SENSOR_PIN
    units: str = "F"
    lcd_bus: int = DEFAULT_LCD_BUS
    lcd_address: int = DEFAULT_LCD_ADDRESS
    publish_transport: str = "mqtt"
    mqtt_broker: str = DEFAULT_MQTT_BROKER
    mqtt_port: int = DEFAULT_MQTT_PORT
    aio_api_url: str = DEFAULT_AIO_API_URL
    simulate: bool = False

    @property
    def publishing_enabled(self):
        """Remote publishing needs a user, a key and a room"""
        return bool(self.aio_user and self.aio_key and self.room)


def load_settings(**overrides):
    """
    Build Settings from the environment.
    Keyword overrides that are None are ignored so CLI defaults fall through.
    """
    settings = Settings(
        room=_env("ROOM", ""),
        aio_user=_env("AIOUSER", ""),
        aio_key=_env("AIOKEY", ""),
        port=_env_int("PORT", DEFAULT_PORT),
        log_level=_env_int("LOGLEVEL", 4),
        pidfile=_env("PIDFILE", DEFAULT_PIDFILE),
        acquire_interval=_env_float("ACQUIRE_INTERVAL", DEFAULT_ACQUIRE_INTERVAL),
        publish_interval=_env_float("PUBLISH_INTERVAL", DEFAULT_PUBLISH_INTERVAL),
        sensor_retries=_env_int("SENSOR_RETRIES", DEFAULT_SENSOR_RETRIES),
        sensor_retry_delay=_env_float("SENSOR_RETRY_DELAY", DEFAULT_SENSOR_RETRY_DELAY),
        sensor_pin=_env_int("SENSOR_PIN", DEFAULT_SENSOR_PIN),
        units=_env("UNITS", "F").upper(),
        lcd_bus=_env_int("LCD_BUS", DEFAULT_LCD_BUS),
        lcd_address=_env_int("LCD_ADDRESS", DEFAULT_LCD_ADDRESS),
        publish_transport=_env("PUBLISH_TRANSPORT", "mqtt").lower(),
        mqtt_broker=_env("MQTT_BROKER", DEFAULT_MQTT_BROKER),
        mqtt_port=_env_int("MQTT_PORT", DEFAULT_MQTT_PORT),
        aio_api_url=_env("AIO_API_URL", DEFAULT_AIO_API_URL),
        simulate=_env_bool("SIMULATE", False),
    )
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        settings = replace(settings, **overrides)
    if settings.units not in ("F", "C"):
        raise ValueError(f"Unsupported units: {settings.units}")
    if settings.publish_transport not in ("mqtt", "http"):
        raise ValueError(f"Unsupported publish transport: {settings.publish_transport}")
    return settings


def python_log_level(level):
    """Map the 0-6 verbosity scale to a logging level, INFO when unknown"""
    return LOG_LEVELS.get(level, logging.INFO)


def setup_logging(level=4, log_file=LOG_FILE):
    """Configure logging to both console and file"""
    global _logging_configured
    py_level = python_log_level(level)
    logger.setLevel(py_level)
    if _logging_configured:
        return

    if logging.getLogger().handlers:
        # Logging already configured by the host process
        _logging_configured = True
        return

    handlers = [logging.StreamHandler()]
    if log_file:
        try:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            logger.warning(f"Cannot write log file {log_file}: {e}")

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, handlers=handlers)

    # Keep library chatter out of the monitor's log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("paho").setLevel(logging.ERROR)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    _logging_configured = True
