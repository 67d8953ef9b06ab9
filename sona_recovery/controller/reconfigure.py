"""
Post-recovery reconfiguration of the SONA control point.
"""

import logging
from typing import Callable, List, Optional

from .client import CallResult
from .snapshot import ConfigSnapshot, ConfigSnapshotStore

logger = logging.getLogger(__name__)


class ReconfigurationClient:
    """Restores configuration, ARP mode, states and flow rules on one replica.

    Calls are fire-and-forget: a failed call is logged and reported in its
    CallResult, and never stops the remaining calls.
    """

    def __init__(self, client, snapshot_store: ConfigSnapshotStore):
        self.client = client
        self.snapshot_store = snapshot_store

    def _report(self, result: CallResult) -> CallResult:
        if result.success:
            logger.info(f"{result.describe()}")
        else:
            logger.warning(f"{result.operation} failed at {result.url}: {result.describe()}")
        return result

    async def restore_config(self, address: str, snapshot: Optional[ConfigSnapshot] = None) -> CallResult:
        logger.info(f"== Restore SONA configuration at {address} ==")
        return self._report(await self.snapshot_store.restore(address, snapshot))

    async def set_arp_mode(self, address: str, mode: str = "broadcast") -> CallResult:
        logger.info(f"== Configure ARP {mode} mode at {address} ==")
        return self._report(await self.client.set_arp_mode(address, mode))

    async def sync_states(self, address: str) -> CallResult:
        logger.info(f"== Synchronize openstack states at {address} ==")
        return self._report(await self.client.sync_states(address))

    async def sync_rules(self, address: str) -> CallResult:
        logger.info(f"== Synchronize openflow rules at {address} ==")
        return self._report(await self.client.sync_rules(address))

    async def reconfigure(self, address: str, snapshot: Optional[ConfigSnapshot] = None,
                          arp_mode: str = "broadcast",
                          after_restore: Optional[Callable[[CallResult], None]] = None) -> List[CallResult]:
        """Run the four reconfiguration calls in their fixed order.

        ``after_restore`` receives the restore result before the ARP mode is
        set; an exception it raises stops the remaining calls.
        """
        results = [await self.restore_config(address, snapshot)]
        if after_restore is not None:
            after_restore(results[0])

        results.append(await self.set_arp_mode(address, arp_mode))
        results.append(await self.sync_states(address))
        results.append(await self.sync_rules(address))
        return results
