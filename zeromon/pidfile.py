"""
PID file bookkeeping for running under an init system.
"""
import os

from zeromon.config import logger


class PidFile:
    def __init__(self, path):
        self.path = path
        self.created = False

    def create(self):
        """Write our PID; failure is logged and otherwise ignored"""
        if not self.path:
            return False
        try:
            with open(self.path, "w") as f:
                f.write(f"{os.getpid()}\n")
        except OSError as e:
            logger.warning(f"Cannot write pidfile {self.path}: {e}")
            return False
        self.created = True
        return True

    def clear(self):
        if not self.created:
            return
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Cannot remove pidfile {self.path}: {e}")
        self.created = False

    def __enter__(self):
        self.create()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.clear()
