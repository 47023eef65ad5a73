import io
import os
import threading
import time

from PIL import Image


def png_bytes(size=(16, 16), color=(200, 30, 30), mode="RGB"):
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def noisy_png_bytes(side=160):
    """PNG that barely compresses, roughly 75 KiB at the default side."""
    image = Image.frombytes("RGB", (side, side), os.urandom(side * side * 3))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class FakeFetcher:
    """Stand-in for ``Fetcher`` that serves canned bytes or errors."""

    def __init__(self, responses=None, delay=0.0):
        self.responses = dict(responses or {})
        self.delay = delay
        self.calls = []
        self.closed = False
        self.max_active = 0
        self._active = 0
        self._guard = threading.Lock()

    def fetch(self, target):
        with self._guard:
            self.calls.append(target)
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        try:
            if self.delay:
                time.sleep(self.delay)
            response = self.responses[target]
            if isinstance(response, Exception):
                raise response
            return response
        finally:
            with self._guard:
                self._active -= 1

    def close(self):
        self.closed = True
