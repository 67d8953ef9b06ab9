"""
In-memory stand-ins for the orchestration platform and the controller API.

Both fakes append to a shared ``events`` list so tests can assert on the
global order of operations.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from .cluster.models import PodInfo, PodStatus
from .controller.client import CallResult, ARP_MODES
from .errors import new_kubernetes_error


def running_pod(name: str, ip: str) -> PodInfo:
    return PodInfo(name=name, phase="Running", pod_ip=ip)


def pending_pod(name: str) -> PodInfo:
    return PodInfo(name=name, phase="Pending")


class FakePlatform:
    """Pods whose state advances along a scripted timeline.

    Each pod has a list of states (a PodInfo, or None for absent). Every
    query that observes a pod moves it one step along its timeline, and
    the last state sticks. Deleting a pod switches it to its recreation
    script, if one was given.
    """

    def __init__(self, pods: Iterable[PodInfo], recreation: Optional[Dict[str, List[Optional[PodInfo]]]] = None,
                 events: Optional[list] = None, fail_deletes: Iterable[str] = ()):
        self.timelines: Dict[str, List[Optional[PodInfo]]] = {p.name: [p] for p in pods}
        self.cursor: Dict[str, int] = {name: 0 for name in self.timelines}
        self.recreation = recreation or {}
        self.events = events if events is not None else []
        self.fail_deletes = set(fail_deletes)
        self.deleted: List[str] = []
        self.list_calls = 0

    def _observe(self, name: str) -> Optional[PodInfo]:
        timeline = self.timelines.get(name)
        if not timeline:
            return None
        index = self.cursor[name]
        state = timeline[index]
        self.cursor[name] = min(index + 1, len(timeline) - 1)
        if state is not None and state.status == PodStatus.RUNNING:
            self.events.append(("running", name))
        return state

    async def list_pods(self) -> List[PodInfo]:
        self.list_calls += 1
        pods = [self._observe(name) for name in list(self.timelines)]
        return [p for p in pods if p is not None]

    async def get_pod(self, name: str) -> Optional[PodInfo]:
        return self._observe(name)

    async def delete_pod(self, name: str) -> None:
        self.events.append(("delete", name))
        if name in self.fail_deletes:
            raise new_kubernetes_error("delete_pod", f"cannot delete {name}")
        self.deleted.append(name)
        self.timelines[name] = list(self.recreation.get(name, [None]))
        self.cursor[name] = 0


class FakeController:
    """Scripted controller API.

    ``activation`` maps an address to the sequence of status codes its
    activation check returns; the last one repeats.
    """

    def __init__(self, config_body: bytes = b'{"nodes": []}', config_status: int = 200,
                 activation: Optional[Dict[str, List[int]]] = None, events: Optional[list] = None,
                 failing: Iterable[str] = ()):
        self.config_body = config_body
        self.config_status = config_status
        self.activation = {k: list(v) for k, v in (activation or {}).items()}
        self.events = events if events is not None else []
        self.failing = set(failing)
        self.calls: List[Tuple[str, str]] = []
        self.restored: List[bytes] = []
        self.closed = False

    def _result(self, operation: str, address: str, status: int = 200, body: bytes = b"") -> CallResult:
        self.calls.append((operation, address))
        self.events.append((operation, address))
        url = f"http://{address}:8181/onos/{operation}"
        if operation in self.failing:
            return CallResult(operation=operation, url=url, success=False,
                              error=f"[TRANSPORT] request to {url} failed")
        return CallResult(operation=operation, url=url, success=200 <= status < 300,
                          status=status, body=body)

    async def get_node_config(self, address: str) -> CallResult:
        return self._result("backup_node_config", address, self.config_status, self.config_body)

    async def post_node_config(self, address: str, payload: bytes) -> CallResult:
        self.restored.append(payload)
        return self._result("restore_node_config", address)

    async def check_activation(self, address: str) -> CallResult:
        statuses = self.activation.get(address, [200])
        status = statuses.pop(0) if len(statuses) > 1 else statuses[0]
        if status == 200:
            self.events.append(("activated", address))
        return CallResult(operation="check_sona_app", url=address, success=status == 200, status=status)

    async def set_arp_mode(self, address: str, mode: str) -> CallResult:
        if mode not in ARP_MODES:
            raise ValueError(mode)
        return self._result(f"config_arp_mode:{mode}", address)

    async def sync_states(self, address: str) -> CallResult:
        return self._result("sync_states", address)

    async def sync_rules(self, address: str) -> CallResult:
        return self._result("sync_rules", address)

    async def close(self):
        self.closed = True
