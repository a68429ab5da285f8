from typing import Protocol
from wallbox_stats.domain.measurements import MeterReading


class MeterSourcePort(Protocol):
    async def fetch(self) -> MeterReading:
        """
        Fetch the current power values of all meters.
        Raises a MeterError subclass if the reading cannot be obtained.
        """
        ...

    async def close(self) -> None:
        """
        Release connections held by the source.
        """
        ...
