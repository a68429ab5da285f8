import logging
import random
from datetime import datetime, timezone

from wallbox_stats.domain.measurements import BOILER, HEATPUMP, INVERTER, PRIMARY, MeterReading

logger = logging.getLogger(__name__)


class MockMeterAdapter:
    async def fetch(self) -> MeterReading:
        logger.debug("Mock: Fetching meter reading")

        heatpump = random.uniform(0.0, 3500.0)
        boiler = random.choice([0.0, random.uniform(1500.0, 3000.0)])
        inverter = random.uniform(0.0, 6000.0)
        # Wallbox either idle or charging with 11 kW, plus some household load
        wallbox = random.choice([0.0, random.uniform(11000.0, 11500.0)])
        household = random.uniform(200.0, 800.0)

        primary = household + wallbox + heatpump + boiler - inverter

        return MeterReading(
            timestamp=datetime.now(timezone.utc),
            meters={
                PRIMARY: round(primary, 1),
                HEATPUMP: round(heatpump, 1),
                BOILER: round(boiler, 1),
                INVERTER: round(inverter, 1),
            },
        )

    async def close(self):
        pass
