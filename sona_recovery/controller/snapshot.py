"""
Config snapshot store.

The snapshot is a single JSON file at a fixed path. It is overwritten by
every backup, read by the restore and purged at the end of every run.
Concurrent runs against the same working directory are not safe.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..errors import new_backup_invalid_error
from .client import CallResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigSnapshot:
    """Handle on the snapshot file."""
    path: Path

    def exists(self) -> bool:
        return self.path.is_file()

    def size(self) -> int:
        return self.path.stat().st_size if self.exists() else 0

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


class ConfigSnapshotStore:
    """Backs up and restores the openstack node configuration."""

    def __init__(self, client, path: Union[str, Path]):
        self.client = client
        self.snapshot = ConfigSnapshot(Path(path))

    async def backup(self, address: str) -> ConfigSnapshot:
        """Export the node configuration from ``address`` into the snapshot file.

        Any previous snapshot is removed first. The response body is only
        written for a 2xx answer, so a failed export leaves no file behind
        and ``validate`` rejects it.
        """
        path = self.snapshot.path
        path.unlink(missing_ok=True)

        result = await self.client.get_node_config(address)
        if not result.success:
            logger.warning(f"Node config export from {address} failed: {result.describe()}")
            return self.snapshot

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(result.body)
        logger.info(f"Saved {len(result.body)} bytes of node configuration to {path}")
        return self.snapshot

    def validate(self, snapshot: Optional[ConfigSnapshot] = None) -> bool:
        """A snapshot is valid iff the file exists and is non-empty."""
        snapshot = snapshot or self.snapshot
        return snapshot.exists() and snapshot.size() > 0

    def require_valid(self, snapshot: Optional[ConfigSnapshot] = None) -> ConfigSnapshot:
        """Return the snapshot, or raise BACKUP_INVALID if it is missing or empty."""
        snapshot = snapshot or self.snapshot
        if not snapshot.exists():
            raise new_backup_invalid_error(str(snapshot.path), f"snapshot {snapshot.path} does not exist")
        if snapshot.size() == 0:
            raise new_backup_invalid_error(str(snapshot.path), f"snapshot {snapshot.path} is empty")
        return snapshot

    async def restore(self, address: str, snapshot: Optional[ConfigSnapshot] = None) -> CallResult:
        """POST the snapshot back to ``address``.

        Raises:
            StandardError: BACKUP_INVALID if the snapshot vanished since the backup
        """
        snapshot = self.require_valid(snapshot)
        return await self.client.post_node_config(address, snapshot.read_bytes())

    def purge(self, snapshot: Optional[ConfigSnapshot] = None) -> bool:
        """Remove the snapshot file. Returns False if it could not be removed."""
        snapshot = snapshot or self.snapshot
        try:
            snapshot.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove snapshot {snapshot.path}: {e}")
            return False
        logger.debug(f"Removed snapshot {snapshot.path}")
        return True
