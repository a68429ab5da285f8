import asyncio
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from wallbox_stats.domain.measurements import Measurement, utc_now

logger = logging.getLogger(__name__)


class PersistedState(BaseModel):
    """Record stored in the state file. Only timestamp and runtime survive a restart."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime = Field(default_factory=utc_now, alias="Timestamp")
    runtime: float = Field(default=0.0, ge=0.0, alias="Runtime")

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class YamlStateStore:
    def __init__(self, path: str):
        self.path = Path(path)

    async def load(self) -> Measurement:
        """
        Load the persisted state asynchronously.
        Creates the file with a default record if it doesn't exist.
        """
        return await asyncio.to_thread(self._load_sync)

    async def save(self, measurement: Measurement) -> None:
        await asyncio.to_thread(self._save_sync, measurement)

    def _load_sync(self) -> Measurement:
        if not self.path.exists():
            logger.info(f"State file {self.path} not found, creating a new one")
            self._write(PersistedState())

        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        state = PersistedState.model_validate(data)
        logger.debug(f"Loaded state: {state.runtime:.3f}h at {state.timestamp}")
        return Measurement(timestamp=state.timestamp, runtime=state.runtime)

    def _save_sync(self, measurement: Measurement) -> None:
        logger.debug(f"Saving measurements to {self.path}")
        try:
            self._write(PersistedState(timestamp=measurement.timestamp, runtime=measurement.runtime))
        except Exception as e:
            logger.error(f"Failed to save state file {self.path}: {e}")
            raise

    def _write(self, state: PersistedState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Write to a sibling file first so a crash never leaves a truncated state file
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(state.model_dump(by_alias=True), f, default_flow_style=False)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
