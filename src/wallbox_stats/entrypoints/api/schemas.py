from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from wallbox_stats.domain.measurements import Measurement, State


class MeasurementResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime = Field(alias="Timestamp")
    power: float = Field(alias="Power")
    energy: float = Field(alias="Energy")
    state: State = Field(alias="State")
    runtime: float = Field(alias="Runtime")

    @classmethod
    def from_measurement(cls, measurement: Measurement) -> "MeasurementResponse":
        return cls(
            timestamp=measurement.timestamp,
            power=measurement.power,
            energy=measurement.energy,
            state=measurement.state,
            runtime=measurement.runtime,
        )
