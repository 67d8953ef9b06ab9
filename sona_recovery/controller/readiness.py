"""
Readiness prober for SONA applications on a controller replica.
"""

import asyncio
import logging
from typing import Optional

from ..errors import ErrorCode, StandardError, new_app_not_activated_error
from ..polling import poll_until

logger = logging.getLogger(__name__)


class ReadinessProber:
    """Polls the activation endpoint until it answers HTTP 200."""

    def __init__(self, client, poll_interval: float = 5.0, timeout: Optional[float] = None,
                 cancel_event: Optional[asyncio.Event] = None):
        self.client = client
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.cancel_event = cancel_event

    async def is_activated(self, address: str) -> bool:
        """Any answer other than 200, including a connection failure, means not yet."""
        result = await self.client.check_activation(address)
        if result.status != 200:
            logger.debug(f"SONA apps at {address} not activated yet: {result.describe()}")
        return result.status == 200

    async def wait_until_activated(self, address: str) -> int:
        """Block until the apps at ``address`` are activated.

        Returns:
            int: Number of probes made

        Raises:
            StandardError: APP_NOT_ACTIVATED when the timeout passes,
                CANCELLED when the run is cancelled
        """
        async def activated():
            return await self.is_activated(address)

        try:
            attempts = await poll_until(activated, self.poll_interval, self.timeout,
                                        f"SONA apps at {address}", self.cancel_event)
        except StandardError as e:
            if e.code != ErrorCode.POLL_TIMEOUT:
                raise
            raise new_app_not_activated_error(
                address, f"SONA apps at {address} not activated within {self.timeout:g}s", e
            )

        logger.info(f"SONA apps at {address} are activated!")
        return attempts
