import logging
from datetime import datetime
from typing import Optional

from wallbox_stats.domain.exceptions import MeterError
from wallbox_stats.domain.measurements import (
    Measurement,
    RuntimeAccumulator,
    State,
    aggregate,
    classify,
    utc_now,
)
from wallbox_stats.ports.meter import MeterSourcePort
from wallbox_stats.services.snapshot import Snapshot

logger = logging.getLogger(__name__)


class CollectorService:
    def __init__(
        self,
        meter: MeterSourcePort,
        snapshot: Snapshot,
        accumulator: Optional[RuntimeAccumulator] = None,
    ):
        self.meter = meter
        self.snapshot = snapshot
        self.accumulator = accumulator or RuntimeAccumulator()

    async def collect(self, now: Optional[datetime] = None) -> Optional[Measurement]:
        """
        One polling cycle: fetch the meters, derive the wallbox power,
        classify it, add runtime and publish the result.

        Returns the published measurement, or None if the cycle was skipped.
        A skipped cycle leaves snapshot and runtime accounting untouched.
        """
        logger.debug("Collecting meter data...")
        try:
            reading = await self.meter.fetch()
            power = aggregate(reading)
        except MeterError as e:
            logger.error(f"Skipping cycle, no meter data: {e}")
            return None

        now = now or utc_now()
        state = classify(power)

        # The polling task is the only writer, so reading before replacing is safe
        previous = self.snapshot.get()
        delta = self.accumulator.accrue(state, now)

        measurement = Measurement(
            timestamp=now,
            power=power if state is State.ON else 0.0,
            energy=0.0,
            state=state,
            runtime=previous.runtime + delta,
        )
        self.snapshot.replace(measurement)

        if state is not previous.state:
            logger.info(f"Wallbox switched {state.value} (derived power {power:.0f}W)")
        logger.debug(f"Derived power: {power:.1f}W, state: {state.value}, runtime: {measurement.runtime:.4f}h")

        return measurement
