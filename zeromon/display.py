"""
Character display support.
I2CLcd drives an HD44780 16x2 LCD through a PCF8574 I2C backpack.
DisplayHandle serializes access so only one write reaches the device at a time.
"""
import threading
import time
from typing import Protocol

from zeromon.config import logger
from zeromon.errors import DisplayError

LINE_1 = 1
LINE_2 = 2

# PCF8574 bit layout: P0=RS P1=RW P2=E P3=backlight P4-P7=D4-D7
_RS = 0x01
_ENABLE = 0x04
_BACKLIGHT = 0x08

_CLEAR = 0x01
_ENTRY_MODE_LEFT = 0x06
_DISPLAY_ON = 0x0C
_FUNCTION_4BIT_2LINE = 0x28
_SET_DDRAM = 0x80

_LINE_OFFSETS = {LINE_1: 0x00, LINE_2: 0x40}


class Display(Protocol):
    def show_message(self, text: str, line: int) -> None: ...
    def backlight_on(self) -> None: ...
    def backlight_off(self) -> None: ...
    def clear(self) -> None: ...
    def close(self) -> None: ...


class I2CLcd:
    """HD44780 in 4-bit mode behind a PCF8574 expander"""

    def __init__(self, bus=1, address=0x27, columns=16):
        from smbus2 import SMBus

        self.address = address
        self.columns = columns
        self._backlight = 0
        try:
            self._bus = SMBus(bus)
            self._init_controller()
        except OSError as e:
            raise DisplayError(f"LCD init failed on bus {bus} address {address:#04x}: {e}") from e

    def _write(self, value):
        self._bus.write_byte(self.address, value | self._backlight)

    def _strobe(self, value):
        self._write(value | _ENABLE)
        time.sleep(0.0005)
        self._write(value & ~_ENABLE)
        time.sleep(0.0001)

    def _write_nibble(self, nibble, mode=0):
        value = (nibble & 0xF0) | mode
        self._write(value)
        self._strobe(value)

    def _send(self, byte, mode=0):
        self._write_nibble(byte & 0xF0, mode)
        self._write_nibble((byte << 4) & 0xF0, mode)

    def _init_controller(self):
        time.sleep(0.05)
        # Force 8-bit mode three times, then switch to 4-bit
        for _ in range(3):
            self._write_nibble(0x30)
            time.sleep(0.005)
        self._write_nibble(0x20)
        self._send(_FUNCTION_4BIT_2LINE)
        self._send(_DISPLAY_ON)
        self._send(_CLEAR)
        time.sleep(0.002)
        self._send(_ENTRY_MODE_LEFT)

    def show_message(self, text, line):
        if line not in _LINE_OFFSETS:
            raise DisplayError(f"No such display line: {line}")
        self._send(_SET_DDRAM | _LINE_OFFSETS[line])
        for char in text[:self.columns]:
            self._send(ord(char) if ord(char) < 256 else ord("?"), _RS)

    def backlight_on(self):
        self._backlight = _BACKLIGHT
        self._write(0)

    def backlight_off(self):
        self._backlight = 0
        self._write(0)

    def clear(self):
        self._send(_CLEAR)
        time.sleep(0.002)

    def close(self):
        self._bus.close()


class ConsoleDisplay:
    """Stand-in used when running without the LCD; logs what would be shown"""

    def __init__(self):
        self.lines = {LINE_1: "", LINE_2: ""}
        self.backlight = False

    def show_message(self, text, line):
        self.lines[line] = text
        logger.debug(f"display line {line}: {text.rstrip()}")

    def backlight_on(self):
        self.backlight = True

    def backlight_off(self):
        self.backlight = False

    def clear(self):
        self.lines = {LINE_1: "", LINE_2: ""}

    def close(self):
        pass


class DisplayHandle:
    """
    Exclusive-access wrapper around a Display.
    Errors from the device surface as DisplayError.
    """
    def __init__(self, display: Display):
        self.display = display
        self._lock = threading.Lock()

    def _call(self, name, *args):
        with self._lock:
            try:
                getattr(self.display, name)(*args)
            except DisplayError:
                raise
            except Exception as e:
                raise DisplayError(f"{name}: {e}") from e

    def write_message(self, text, line):
        self._call("show_message", text, line)

    def backlight_on(self):
        self._call("backlight_on")

    def backlight_off(self):
        self._call("backlight_off")

    def close(self):
        self._call("close")
