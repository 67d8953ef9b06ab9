#!/usr/bin/env python3
"""
SONA Recovery Orchestrator

Sequences the recovery of a SONA deployment:

1. Backup the existing SONA node configuration.
2. Restart the entire SONA pods including clusterman.
3. Restore the backed up SONA node configuration.
4. Configure ARP mode (broadcast by default).
5. Synchronize openstack states by querying the neutron server.
6. Reinstall all flow rules into OpenvSwitch.

The backup validation is the only fail-fast gate. Once teardown starts the
run is committed; a stuck run is recovered by running it again from scratch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from ..cluster import KubectlClient, LifecycleController, Node, NodeDirectory, PodStatus, Topology
from ..controller import CallResult, ConfigSnapshot, ConfigSnapshotStore, ControllerClient
from ..controller import ReadinessProber, ReconfigurationClient
from ..errors import ErrorCode, ErrorHandler, StandardError, new_cancelled_error


class RecoveryPhase(Enum):
    """Recovery state machine states"""
    IDLE = "idle"
    BACKING_UP = "backing_up"
    BACKUP_FAILED = "backup_failed"
    BACKUP_OK = "backup_ok"
    TEARING_DOWN = "tearing_down"
    WAITING_FOR_PODS = "waiting_for_pods"
    WAITING_FOR_APPS = "waiting_for_apps"
    RESTORING = "restoring"
    RECONFIGURING = "reconfiguring"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class RecoveryRun:
    """In-memory state of one run; never persisted."""
    topology: Topology
    phase: RecoveryPhase = RecoveryPhase.IDLE
    history: List[RecoveryPhase] = field(default_factory=lambda: [RecoveryPhase.IDLE])
    snapshot: Optional[ConfigSnapshot] = None
    pod_status: Dict[str, PodStatus] = field(default_factory=dict)
    activation: Dict[str, bool] = field(default_factory=dict)
    deleted: List[str] = field(default_factory=list)
    reconfiguration: List[CallResult] = field(default_factory=list)
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class RecoveryResult:
    """Recovery run final result"""
    success: bool
    phase: RecoveryPhase
    history: List[RecoveryPhase]
    start_time: datetime
    end_time: datetime
    duration: timedelta
    pod_status: Dict[str, PodStatus]
    activation: Dict[str, bool]
    deleted: List[str]
    reconfiguration: List[CallResult]
    error: Optional[StandardError] = None
    snapshot_path: str = ""
    snapshot_purged: bool = True

    @property
    def failed_calls(self) -> List[CallResult]:
        return [r for r in self.reconfiguration if not r.success]


class RecoveryOrchestrator:
    """Runs the backup, teardown, wait, restore and reconfigure sequence."""

    def __init__(self, config, platform=None, controller=None, logger: Optional[logging.Logger] = None):
        """Initialize the orchestrator.

        Args:
            config: Immutable RecoveryConfig
            platform: Pod platform client; kubectl is used when omitted
            controller: Controller API client; an aiohttp client is used when omitted
            logger: Logger for state transitions
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.platform = platform or KubectlClient.from_config(config)
        self.controller = controller or ControllerClient(config.controller)
        self._owns_controller = controller is None
        self.cancel_event = asyncio.Event()
        self.error_handler = ErrorHandler("recovery", self.logger)

        policy = config.recovery
        self.directory = NodeDirectory(self.platform)
        self.snapshot_store = ConfigSnapshotStore(self.controller, config.snapshot.path)
        self.lifecycle = LifecycleController(
            self.platform, policy.poll_interval, policy.pod_timeout, self.cancel_event
        )
        self.prober = ReadinessProber(
            self.controller, policy.poll_interval, policy.app_timeout, self.cancel_event
        )
        self.reconfigurator = ReconfigurationClient(self.controller, self.snapshot_store)

    def request_cancel(self) -> None:
        """Ask the run to stop at the next step boundary or poll attempt."""
        if not self.cancel_event.is_set():
            self.logger.warning("Cancellation requested, stopping after the current step")
        self.cancel_event.set()

    def _transition(self, run: RecoveryRun, phase: RecoveryPhase) -> None:
        run.phase = phase
        run.history.append(phase)
        self.logger.debug(f"Recovery phase: {phase.value}")

    def _checkpoint(self, operation: str) -> None:
        if self.cancel_event.is_set():
            raise new_cancelled_error(operation)

    async def run(self) -> RecoveryResult:
        """Execute the complete recovery workflow.

        The snapshot file is purged exactly once when the run ends, whatever
        the outcome.
        """
        run = RecoveryRun(topology=Topology.from_config(self.config.topology))
        error = None

        try:
            await self._phase_backup(run)
            await self._phase_teardown(run)
            await self._phase_wait_for_pods(run)
            await self._phase_wait_for_apps(run)
            await self._phase_reconfigure(run)

            self._transition(run, RecoveryPhase.DONE)
            self.logger.info("Done, Bye!")

        except Exception as e:
            error = self.error_handler.handle(e, "run")
            if error.code == ErrorCode.BACKUP_INVALID and run.phase == RecoveryPhase.BACKING_UP:
                self._transition(run, RecoveryPhase.BACKUP_FAILED)
            elif error.code == ErrorCode.CANCELLED:
                self._transition(run, RecoveryPhase.CANCELLED)
            else:
                self._transition(run, RecoveryPhase.FAILED)

        finally:
            purged = self.snapshot_store.purge(run.snapshot)
            if self._owns_controller:
                await self.controller.close()

        end_time = datetime.now(timezone.utc)
        return RecoveryResult(
            success=run.phase == RecoveryPhase.DONE,
            phase=run.phase,
            history=list(run.history),
            start_time=run.start_time,
            end_time=end_time,
            duration=end_time - run.start_time,
            pod_status=dict(run.pod_status),
            activation=dict(run.activation),
            deleted=list(run.deleted),
            reconfiguration=list(run.reconfiguration),
            error=error,
            snapshot_path=str(self.snapshot_store.snapshot.path),
            snapshot_purged=purged,
        )

    async def _phase_backup(self, run: RecoveryRun):
        """Resolve the topology and back up the node configuration."""
        self._checkpoint("backup")
        self._transition(run, RecoveryPhase.BACKING_UP)

        run.topology = await self.directory.resolve_topology(run.topology)
        address = run.topology.first_replica.address

        self.logger.info("== Backup SONA node configurations ==")
        run.snapshot = await self.snapshot_store.backup(address)

        self.logger.info("== Check node backup file ==")
        self.snapshot_store.require_valid(run.snapshot)
        self.logger.info("Backup file seems OK...")
        self._transition(run, RecoveryPhase.BACKUP_OK)

    async def _phase_teardown(self, run: RecoveryRun):
        """Delete every pod, the cluster manager first."""
        self._checkpoint("teardown")
        self._transition(run, RecoveryPhase.TEARING_DOWN)

        self.logger.info("== Purge all SONA pods ==")
        run.deleted = await self.lifecycle.delete_all(run.topology.nodes)

    async def _phase_wait_for_pods(self, run: RecoveryRun):
        """Wait until the recreated pods are Running, then re-resolve addresses."""
        self._checkpoint("wait_for_pods")
        self._transition(run, RecoveryPhase.WAITING_FOR_PODS)

        self.logger.info("== Check pods status ==")
        nodes = list(run.topology.replicas)
        if self.config.recovery.wait_for_cluster_manager:
            nodes.insert(0, run.topology.cluster_manager)

        async def wait(node: Node):
            run.pod_status[node.name] = await self.lifecycle.wait_until_recreated(node)

        await self._for_each(nodes, wait)

        # Recreated pods get new IPs
        previous = {n.name: n.address for n in run.topology.replicas}
        run.topology = await self.directory.resolve_topology(run.topology)
        for node in run.topology.replicas:
            if previous.get(node.name) != node.address:
                self.logger.info(f"{node.name} moved from {previous.get(node.name)} to {node.address}")

    async def _phase_wait_for_apps(self, run: RecoveryRun):
        """Wait until SONA apps on every replica are activated."""
        self._checkpoint("wait_for_apps")
        self._transition(run, RecoveryPhase.WAITING_FOR_APPS)

        self.logger.info("== Check SONA app status ==")

        async def wait(node: Node):
            await self.prober.wait_until_activated(node.address)
            run.activation[node.name] = True

        await self._for_each(run.topology.replicas, wait)

    async def _phase_reconfigure(self, run: RecoveryRun):
        """Restore the snapshot and resynchronise the first replica."""
        self._checkpoint("restore")
        self._transition(run, RecoveryPhase.RESTORING)

        def restored(result: CallResult):
            run.reconfiguration.append(result)
            self._checkpoint("reconfigure")
            self._transition(run, RecoveryPhase.RECONFIGURING)

        run.reconfiguration = await self.reconfigurator.reconfigure(
            run.topology.first_replica.address,
            run.snapshot,
            self.config.recovery.arp_mode,
            after_restore=restored,
        )

        failed = [r for r in run.reconfiguration if not r.success]
        if failed:
            self.logger.warning(
                f"{len(failed)} of {len(run.reconfiguration)} reconfiguration calls failed: "
                + ", ".join(r.describe() for r in failed)
            )

    async def _for_each(self, nodes: Iterable[Node], action: Callable[[Node], Awaitable[None]]):
        """Apply ``action`` to each node, sequentially or concurrently per policy.

        Returns only after every action has finished; on the first failure
        the remaining concurrent actions are cancelled.
        """
        nodes = list(nodes)
        if not self.config.recovery.parallel_waits:
            for node in nodes:
                await action(node)
            return

        tasks = [asyncio.create_task(action(node)) for node in nodes]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
