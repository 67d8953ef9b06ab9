"""
Pod lifecycle control: teardown and the wait for pods to come back.
"""

import asyncio
import logging
from typing import Iterable, List, Optional

from ..errors import ErrorCode, ErrorHandler, StandardError, new_pod_stuck_error
from ..polling import poll_until
from .models import Node, PodStatus

logger = logging.getLogger(__name__)


class LifecycleController:
    """Deletes SONA pods and polls until the platform has recreated them.

    Every check is a fresh platform query; platform failures while polling
    count as "not yet" and are retried on the next interval.
    """

    def __init__(self, platform, poll_interval: float = 5.0, timeout: Optional[float] = None,
                 cancel_event: Optional[asyncio.Event] = None):
        self.platform = platform
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.cancel_event = cancel_event
        self.error_handler = ErrorHandler("lifecycle", logger)

    async def delete_all(self, nodes: Iterable[Node]) -> List[str]:
        """Request deletion of every node in order, one call per node.

        Deletion is fire-and-forget: a failed request is logged and the
        remaining nodes are still deleted.

        Returns:
            List[str]: Names of the pods whose deletion was accepted
        """
        deleted = []
        for node in nodes:
            logger.info(f"Delete k8s pod {node.name}...")
            try:
                await self.platform.delete_pod(node.name)
            except StandardError as e:
                self.error_handler.handle(e, "delete_all")
                continue
            deleted.append(node.name)
        return deleted

    async def pod_exists(self, name: str) -> bool:
        """True when the namespace listing has a pod named exactly ``name``.

        Substring matches do not count: sona-onos-10 is not sona-onos-1.
        """
        try:
            pods = await self.platform.list_pods()
        except StandardError as e:
            logger.debug(f"Pod listing failed while waiting for {name}: {e}")
            return False
        return any(pod.name == name for pod in pods)

    async def pod_status(self, name: str) -> PodStatus:
        try:
            pod = await self.platform.get_pod(name)
        except StandardError as e:
            logger.debug(f"Status query for {name} failed: {e}")
            return PodStatus.OTHER
        if pod is None:
            return PodStatus.ABSENT
        if pod.status != PodStatus.RUNNING:
            logger.debug(f"{name} is {pod.display_status}")
        return pod.status

    async def wait_until_recreated(self, node: Node) -> PodStatus:
        """Block until ``node`` exists again and reports Running.

        The configured timeout covers both phases together.

        Raises:
            StandardError: POD_STUCK when the timeout passes, CANCELLED
                when the run is cancelled
        """
        loop = asyncio.get_running_loop()
        start = loop.time()

        async def exists():
            return await self.pod_exists(node.name)

        async def running():
            return await self.pod_status(node.name) == PodStatus.RUNNING

        try:
            await poll_until(exists, self.poll_interval, self.timeout,
                             f"pod {node.name} to exist", self.cancel_event)

            remaining = None
            if self.timeout is not None:
                remaining = max(self.timeout - (loop.time() - start), 0.0)
            await poll_until(running, self.poll_interval, remaining,
                             f"pod {node.name} to be Running", self.cancel_event)
        except StandardError as e:
            if e.code != ErrorCode.POLL_TIMEOUT:
                raise
            raise new_pod_stuck_error(
                node.name, f"pod {node.name} did not reach Running within {self.timeout:g}s", e
            )

        logger.info(f"{node.name} is Running!")
        return PodStatus.RUNNING
