"""
Exceptions raised by the monitor's hardware and transport adapters.
"""


class ZeromonError(Exception):
    """Base class for monitor errors"""


class SensorError(ZeromonError):
    """A bus-level sensor read failed or returned a malformed value"""


class DisplayError(ZeromonError):
    """The character display could not be initialized or written"""


class PublishError(ZeromonError):
    """The remote publish transport rejected or failed a message"""
