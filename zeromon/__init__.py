"""
Environment monitor: samples a temperature/humidity sensor and fans the
latest reading out to a character display, a metrics endpoint and a remote
telemetry feed.
"""
import platform

__version__ = "0.1.0"


def build_info():
    return f"zeromon version {__version__} python version {platform.python_version()}"
