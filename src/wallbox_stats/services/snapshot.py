import threading
from typing import Optional

from wallbox_stats.domain.measurements import Measurement


class Snapshot:
    """
    Holder of the latest Measurement, shared between the polling task,
    the backup task and the web endpoints.

    The Measurement itself is immutable; writers swap the whole object under
    the lock, so a reader always gets one consistent measurement.
    """

    def __init__(self, measurement: Optional[Measurement] = None):
        self._lock = threading.Lock()
        self._measurement = measurement or Measurement()

    def get(self) -> Measurement:
        with self._lock:
            return self._measurement

    def replace(self, measurement: Measurement) -> Measurement:
        """Publish a new measurement, returning the one it replaced."""
        with self._lock:
            previous = self._measurement
            self._measurement = measurement
        return previous

    def restore(self, persisted: Measurement) -> None:
        """Take over timestamp and runtime of a persisted state, everything else is reset."""
        self.replace(Measurement(timestamp=persisted.timestamp, runtime=persisted.runtime))
