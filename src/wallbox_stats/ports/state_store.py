from typing import Protocol
from wallbox_stats.domain.measurements import Measurement


class StateStorePort(Protocol):
    async def load(self) -> Measurement:
        """
        Load the persisted timestamp and runtime.
        Creates a default record (now, zero runtime) if none exists yet.
        """
        ...

    async def save(self, measurement: Measurement) -> None:
        """
        Persist timestamp and runtime of the given measurement.
        """
        ...
