"""
Orchestration platform access through the kubectl binary.

Commands are executed as argument vectors, never through a shell, and
their JSON output is parsed into PodInfo records.
"""

import asyncio
import json
import logging
from typing import List, Optional

from ..errors import new_kubernetes_error
from .models import PodInfo

logger = logging.getLogger(__name__)


class KubectlClient:
    """Lists, inspects and deletes pods in a single namespace."""

    def __init__(self, namespace: str, binary: str = "kubectl", context: str = "",
                 request_timeout: float = 30.0):
        self.namespace = namespace
        self.binary = binary
        self.context = context
        self.request_timeout = request_timeout

    @classmethod
    def from_config(cls, config) -> 'KubectlClient':
        return cls(
            namespace=config.topology.namespace,
            binary=config.kubectl.binary,
            context=config.kubectl.context,
            request_timeout=config.kubectl.request_timeout,
        )

    def _command(self, *args: str) -> List[str]:
        cmd = [self.binary]
        if self.context:
            cmd.extend(['--context', self.context])
        cmd.extend(['-n', self.namespace])
        cmd.extend(args)
        return cmd

    async def _run(self, operation: str, *args: str) -> str:
        """Run kubectl and return its stdout.

        Raises:
            StandardError: KUBERNETES_API on a missing binary, a timeout
                or a non-zero exit status
        """
        cmd = self._command(*args)
        logger.debug(f"Executing command: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise new_kubernetes_error(operation, f"cannot execute {self.binary}", e)

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.request_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise new_kubernetes_error(
                operation, f"kubectl timed out after {self.request_timeout:g} seconds"
            ).with_context("command", cmd)

        if proc.returncode != 0:
            raise new_kubernetes_error(
                operation,
                f"kubectl failed with exit code {proc.returncode}: {stderr.decode(errors='replace').strip()}"
            ).with_context("command", cmd)

        return stdout.decode(errors='replace')

    @staticmethod
    def _parse_json(operation: str, output: str):
        try:
            return json.loads(output)
        except ValueError as e:
            raise new_kubernetes_error(operation, "kubectl returned malformed JSON", e)

    async def list_pods(self) -> List[PodInfo]:
        """List every pod in the namespace."""
        output = await self._run("list_pods", "get", "pods", "-o", "json")
        data = self._parse_json("list_pods", output)
        return [PodInfo.from_manifest(item) for item in data.get('items') or []]

    async def get_pod(self, name: str) -> Optional[PodInfo]:
        """Fetch a single pod, or None when the platform has no pod of that name."""
        output = await self._run("get_pod", "get", "pod", name, "-o", "json", "--ignore-not-found")
        if not output.strip():
            return None
        return PodInfo.from_manifest(self._parse_json("get_pod", output))

    async def delete_pod(self, name: str) -> None:
        """Request deletion without waiting for the pod to terminate."""
        await self._run("delete_pod", "delete", "pod", name, "--wait=false", "--ignore-not-found")
        logger.debug(f"Deletion of pod {name} requested")
