"""
Node directory: resolves stable pod names to their current IP addresses.

Pod IPs change whenever a pod is recreated, so addresses are resolved
again after every restart rather than cached across it.
"""

import logging

from ..errors import StandardError, new_address_unavailable_error
from .models import Node, Topology

logger = logging.getLogger(__name__)


class NodeDirectory:
    """Resolves node addresses through the platform's pod listing."""

    def __init__(self, platform):
        self.platform = platform

    async def resolve(self, node: Node) -> str:
        """Return the current IP address of ``node``.

        Raises:
            StandardError: ADDRESS_UNAVAILABLE when the pod is unknown to
                the platform, has no IP yet, or the platform query fails
        """
        try:
            pod = await self.platform.get_pod(node.name)
        except StandardError as e:
            raise new_address_unavailable_error(node.name, f"cannot look up pod {node.name}", e)

        if pod is None:
            raise new_address_unavailable_error(node.name, f"pod {node.name} not found")
        if not pod.pod_ip:
            raise new_address_unavailable_error(node.name, f"pod {node.name} has no IP address")

        logger.debug(f"Resolved {node.name} to {pod.pod_ip}")
        return pod.pod_ip

    async def resolve_topology(self, topology: Topology) -> Topology:
        """Resolve every controller replica; the cluster manager needs no address."""
        addresses = {}
        for node in topology.replicas:
            addresses[node.name] = await self.resolve(node)

        return topology.with_addresses(addresses)
