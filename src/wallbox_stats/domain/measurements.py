from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from wallbox_stats.domain.exceptions import MeterMissingError

# Power above which the wallbox counts as charging (W)
THRESHOLD_WATTS = 11000

PRIMARY = "primary"
HEATPUMP = "heatpump"
BOILER = "boiler"
INVERTER = "inverter"

REQUIRED_METERS = (PRIMARY, HEATPUMP, BOILER, INVERTER)

DEFAULT_POLL_INTERVAL = timedelta(seconds=60)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class State(str, Enum):
    ON = "on"
    OFF = "off"


class Measurement(BaseModel):
    """Latest derived measurement of the wallbox. Replaced as a whole, never mutated."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utc_now)
    power: float = 0.0
    # Reserved, not measured yet
    energy: float = 0.0
    state: State = State.OFF
    runtime: float = Field(default=0.0, ge=0.0)  # hours


class MeterReading(BaseModel):
    """Power values (W) of one meter payload, keyed by meter name."""

    timestamp: Optional[datetime] = None
    meters: dict[str, float] = Field(default_factory=dict)


def aggregate(reading: MeterReading) -> float:
    """
    Derive the wallbox power from the sub meters.

    The primary meter sees the whole site, so heat pump and boiler loads are
    subtracted and the inverter output is added back.
    Raises MeterMissingError naming the first absent meter.
    """
    missing = [name for name in REQUIRED_METERS if name not in reading.meters]
    if missing:
        raise MeterMissingError(missing[0], missing)

    meters = reading.meters
    return meters[PRIMARY] - meters[HEATPUMP] - meters[BOILER] + meters[INVERTER]


def classify(power: float) -> State:
    return State.ON if power > THRESHOLD_WATTS else State.OFF


class RuntimeAccumulator:
    """
    Turns the sequence of classified states into runtime increments.

    Owned by the polling task. Each on-cycle contributes the time since the
    previous cycle; the first on-cycle after an off phase contributes at most
    one polling interval, so an off gap is never counted as runtime.
    """

    def __init__(
        self,
        last_state: State = State.OFF,
        last_transition: Optional[datetime] = None,
        interval: timedelta = DEFAULT_POLL_INTERVAL,
    ):
        self.last_state = last_state
        self.last_transition = last_transition or utc_now()
        self.interval = interval

    def accrue(self, state: State, now: Optional[datetime] = None) -> float:
        """Return the runtime (hours) to add for a cycle observed at `now`."""
        now = now or utc_now()
        delta = 0.0

        if state is State.ON:
            if self.last_state is not State.ON:
                # switched on somewhere since the last cycle
                self.last_transition = max(self.last_transition, now - self.interval)
            # a clock stepped backwards yields no runtime
            delta = max((now - self.last_transition).total_seconds(), 0.0) / 3600
            self.last_transition = now

        self.last_state = state
        return delta
