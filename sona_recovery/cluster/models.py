"""
Data model for the SONA deployment as seen from the orchestration platform.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class NodeRole(Enum):
    """Topology membership of a pod."""
    CLUSTER_MANAGER = "cluster_manager"
    CONTROLLER_REPLICA = "controller_replica"


class PodStatus(Enum):
    """Pod status as reported by a fresh platform query."""
    ABSENT = "Absent"
    PENDING = "Pending"
    RUNNING = "Running"
    OTHER = "Other"


@dataclass(frozen=True)
class Node:
    """A pod of the SONA deployment, addressed by its stable name."""
    name: str
    role: NodeRole
    address: Optional[str] = None

    @property
    def is_replica(self) -> bool:
        return self.role == NodeRole.CONTROLLER_REPLICA


@dataclass(frozen=True)
class Topology:
    """Ordered set of nodes: the cluster manager first, then the replicas."""
    nodes: Tuple[Node, ...]

    def __post_init__(self):
        managers = [n for n in self.nodes if n.role == NodeRole.CLUSTER_MANAGER]
        if len(managers) != 1:
            raise ValueError(f"topology needs exactly one cluster manager, got {len(managers)}")
        if not self.replicas:
            raise ValueError("topology needs at least one controller replica")
        names = [n.name for n in self.nodes]
        if len(set(names)) != len(names):
            raise ValueError("topology node names must be unique")

    @classmethod
    def from_names(cls, cluster_manager: str, controllers) -> 'Topology':
        nodes = [Node(cluster_manager, NodeRole.CLUSTER_MANAGER)]
        nodes.extend(Node(name, NodeRole.CONTROLLER_REPLICA) for name in controllers)
        return cls(tuple(nodes))

    @classmethod
    def from_config(cls, topology_config) -> 'Topology':
        return cls.from_names(topology_config.cluster_manager, topology_config.controllers)

    @property
    def cluster_manager(self) -> Node:
        return next(n for n in self.nodes if n.role == NodeRole.CLUSTER_MANAGER)

    @property
    def replicas(self) -> Tuple[Node, ...]:
        return tuple(n for n in self.nodes if n.is_replica)

    @property
    def first_replica(self) -> Node:
        """The control point all controller API calls go to."""
        return self.replicas[0]

    def with_addresses(self, addresses: Mapping[str, str]) -> 'Topology':
        """Return a copy with node addresses replaced from a name -> IP mapping."""
        return Topology(tuple(
            replace(n, address=addresses[n.name]) if n.name in addresses else n
            for n in self.nodes
        ))


@dataclass(frozen=True)
class PodInfo:
    """The parts of a pod manifest the recovery cares about."""
    name: str
    phase: str = ""
    pod_ip: str = ""
    terminating: bool = False
    waiting_reason: str = ""

    @classmethod
    def from_manifest(cls, manifest: Dict[str, Any]) -> 'PodInfo':
        metadata = manifest.get('metadata') or {}
        status = manifest.get('status') or {}

        waiting_reason = ""
        for container in status.get('containerStatuses') or []:
            waiting = (container.get('state') or {}).get('waiting')
            if waiting:
                waiting_reason = waiting.get('reason', 'Waiting')
                break

        return cls(
            name=metadata.get('name', ''),
            phase=status.get('phase', ''),
            pod_ip=status.get('podIP') or '',
            terminating=bool(metadata.get('deletionTimestamp')),
            waiting_reason=waiting_reason,
        )

    @property
    def status(self) -> PodStatus:
        # A pod being deleted still reports phase Running until it is gone.
        if self.terminating:
            return PodStatus.OTHER
        if self.phase == "Pending":
            return PodStatus.PENDING
        if self.phase == "Running" and not self.waiting_reason:
            return PodStatus.RUNNING
        return PodStatus.OTHER

    @property
    def display_status(self) -> str:
        """Status as kubectl would print it in the STATUS column."""
        if self.terminating:
            return "Terminating"
        return self.waiting_reason or self.phase or "Unknown"
