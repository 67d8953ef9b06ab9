"""
ONOS management API client.

Every call returns a CallResult instead of raising on transport or HTTP
failures, so that callers decide whether a failure is fatal, retried or
only reported.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import aiohttp

from ..errors import new_transport_error

logger = logging.getLogger(__name__)

NODE_CONFIG_PATH = "/openstacknode/configure"
ACTIVATION_PATH = "/openstacknetworking/management/floatingips/all"
ARP_MODE_PATH = "/openstacknetworking/management/config/arpmode/{mode}"
SYNC_STATES_PATH = "/openstacknetworking/management/sync/states"
SYNC_RULES_PATH = "/openstacknetworking/management/sync/rules"

ARP_MODES = ("broadcast", "proxy")


@dataclass
class CallResult:
    """Outcome of a single controller API call."""
    operation: str
    url: str
    success: bool
    status: Optional[int] = None
    error: Optional[str] = None
    duration: float = 0.0
    body: bytes = field(default=b"", repr=False)

    def describe(self) -> str:
        if self.status is not None:
            return f"{self.operation} -> HTTP {self.status}"
        return f"{self.operation} -> {self.error}"


class ControllerClient:
    """Client for the ONOS REST API of a SONA controller replica."""

    def __init__(self, config, session: Optional[aiohttp.ClientSession] = None):
        """Initialize the client.

        Args:
            config: ControllerConfig with scheme, port, base path and credentials
            session: Optional pre-built session; one is created lazily otherwise
        """
        self.config = config
        self.base_path = config.base_path.rstrip('/')
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                auth=aiohttp.BasicAuth(self.config.username, self.config.password),
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the HTTP session"""
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def url_for(self, address: str, path: str) -> str:
        host = f"[{address}]" if ':' in address else address
        return f"{self.config.scheme}://{host}:{self.config.port}{self.base_path}{path}"

    async def request(self, operation: str, method: str, address: str, path: str,
                      data: Optional[bytes] = None) -> CallResult:
        """Issue one authenticated request and capture its outcome."""
        url = self.url_for(address, path)
        headers = {"Content-Type": "application/json"} if data is not None else None
        start_time = time.monotonic()

        try:
            session = await self._get_session()
            async with session.request(method, url, data=data, headers=headers) as response:
                body = await response.read()
                duration = time.monotonic() - start_time
                return CallResult(
                    operation=operation,
                    url=url,
                    success=200 <= response.status < 300,
                    status=response.status,
                    duration=duration,
                    body=body,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            error = new_transport_error(operation, url, e)
            logger.debug(f"{operation}: {error}")
            return CallResult(
                operation=operation,
                url=url,
                success=False,
                error=str(error),
                duration=time.monotonic() - start_time,
            )

    async def get_node_config(self, address: str) -> CallResult:
        """Export the openstack node configuration."""
        return await self.request("backup_node_config", "GET", address, NODE_CONFIG_PATH)

    async def post_node_config(self, address: str, payload: bytes) -> CallResult:
        """Import a previously exported openstack node configuration."""
        return await self.request("restore_node_config", "POST", address, NODE_CONFIG_PATH, data=payload)

    async def check_activation(self, address: str) -> CallResult:
        """Query the floating IP listing; it only answers 200 once SONA apps are active."""
        return await self.request("check_sona_app", "GET", address, ACTIVATION_PATH)

    async def set_arp_mode(self, address: str, mode: str) -> CallResult:
        if mode not in ARP_MODES:
            raise ValueError(f"unsupported ARP mode {mode!r}, expected one of {', '.join(ARP_MODES)}")
        return await self.request("config_arp_mode", "GET", address, ARP_MODE_PATH.format(mode=mode))

    async def sync_states(self, address: str) -> CallResult:
        """Synchronize openstack states by querying the neutron server."""
        return await self.request("sync_states", "GET", address, SYNC_STATES_PATH)

    async def sync_rules(self, address: str) -> CallResult:
        """Reinstall flow rules derived from the synchronized states."""
        return await self.request("sync_rules", "GET", address, SYNC_RULES_PATH)
