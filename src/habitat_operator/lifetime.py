"""Cancellation token shared by the controller and its watch."""

import threading


class Lifetime:
    """A cancellable lifetime carrying the reason it ended.

    The first ``cancel()`` wins; later calls do not overwrite the reason.
    ``stop_flag`` is a plain ``threading.Event`` so it can be handed to kopf.
    """

    def __init__(self):
        self._stop_flag = threading.Event()
        self._lock = threading.Lock()
        self._reason = None

    @property
    def stop_flag(self):
        return self._stop_flag

    @property
    def cancelled(self):
        return self._stop_flag.is_set()

    @property
    def reason(self):
        return self._reason

    def cancel(self, reason=None):
        """End the lifetime, recording ``reason`` if it is the first cancel."""
        with self._lock:
            if self._stop_flag.is_set():
                return
            self._reason = reason
            self._stop_flag.set()

    def wait(self, timeout=None):
        """Block until cancelled; False if ``timeout`` elapsed first."""
        return self._stop_flag.wait(timeout)
