import logging

from wallbox_stats.domain.measurements import Measurement
from wallbox_stats.ports.state_store import StateStorePort
from wallbox_stats.services.snapshot import Snapshot

logger = logging.getLogger(__name__)


class BackupService:
    def __init__(self, store: StateStorePort, snapshot: Snapshot):
        self.store = store
        self.snapshot = snapshot

    async def restore(self) -> Measurement:
        """
        Initialize the snapshot from the persisted state.
        Errors propagate, the caller can't continue without a runtime baseline.
        """
        persisted = await self.store.load()
        self.snapshot.restore(persisted)
        logger.info(f"Restored runtime {persisted.runtime:.3f}h (saved {persisted.timestamp})")
        return persisted

    async def backup(self) -> None:
        """Persist timestamp and runtime of the current snapshot."""
        measurement = self.snapshot.get()
        await self.store.save(measurement)
        logger.debug(f"Backed up runtime {measurement.runtime:.3f}h")
