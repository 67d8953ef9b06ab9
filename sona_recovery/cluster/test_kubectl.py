"""
Tests for the kubectl platform client.
"""

import asyncio
import json
import unittest
from unittest.mock import AsyncMock, Mock, patch

from ..errors import ErrorCode, StandardError
from .kubectl import KubectlClient
from .models import PodStatus
from .test_models import pod_manifest


def fake_process(stdout=b"", stderr=b"", returncode=0):
    proc = Mock()
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock(return_value=returncode)
    proc.returncode = returncode
    return proc


class TestKubectlCommand(unittest.IsolatedAsyncioTestCase):
    """Test command construction and process handling."""

    def setUp(self):
        self.client = KubectlClient("openstack")

    def test_command_without_context(self):
        self.assertEqual(
            self.client._command("get", "pods"),
            ["kubectl", "-n", "openstack", "get", "pods"]
        )

    def test_command_with_context(self):
        client = KubectlClient("openstack", binary="/usr/local/bin/kubectl", context="sona-prod")
        self.assertEqual(
            client._command("get", "pods"),
            ["/usr/local/bin/kubectl", "--context", "sona-prod", "-n", "openstack", "get", "pods"]
        )

    async def test_run_returns_stdout(self):
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=fake_process(b"ok"))) as mock_exec:
            output = await self.client._run("test", "get", "pods")

        self.assertEqual(output, "ok")
        args = mock_exec.call_args[0]
        self.assertEqual(args, ("kubectl", "-n", "openstack", "get", "pods"))

    async def test_run_non_zero_exit(self):
        proc = fake_process(stderr=b"error: You must be logged in", returncode=1)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with self.assertRaises(StandardError) as ctx:
                await self.client._run("list_pods", "get", "pods")

        self.assertEqual(ctx.exception.code, ErrorCode.KUBERNETES_API)
        self.assertIn("exit code 1", ctx.exception.message)
        self.assertIn("logged in", ctx.exception.message)

    async def test_run_missing_binary(self):
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("kubectl"))):
            with self.assertRaises(StandardError) as ctx:
                await self.client._run("list_pods", "get", "pods")

        self.assertEqual(ctx.exception.code, ErrorCode.KUBERNETES_API)

    async def test_run_timeout_kills_process(self):
        client = KubectlClient("openstack", request_timeout=0.01)
        proc = fake_process()

        async def hang():
            await asyncio.sleep(1)

        proc.communicate = AsyncMock(side_effect=hang)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with self.assertRaises(StandardError) as ctx:
                await client._run("list_pods", "get", "pods")

        self.assertIn("timed out", ctx.exception.message)
        proc.kill.assert_called_once()


class TestKubectlOperations(unittest.IsolatedAsyncioTestCase):
    """Test pod operations with the kubectl runner patched out."""

    def setUp(self):
        self.client = KubectlClient("openstack")

    async def test_list_pods(self):
        listing = {'items': [pod_manifest("sona-onos-0"), pod_manifest("sona-onos-10", phase="Pending")]}
        with patch.object(self.client, "_run", AsyncMock(return_value=json.dumps(listing))) as mock_run:
            pods = await self.client.list_pods()

        self.assertEqual([p.name for p in pods], ["sona-onos-0", "sona-onos-10"])
        self.assertEqual(pods[1].status, PodStatus.PENDING)
        mock_run.assert_awaited_once_with("list_pods", "get", "pods", "-o", "json")

    async def test_get_pod(self):
        with patch.object(self.client, "_run", AsyncMock(return_value=json.dumps(pod_manifest("sona-onos-1")))):
            pod = await self.client.get_pod("sona-onos-1")

        self.assertEqual(pod.name, "sona-onos-1")
        self.assertEqual(pod.status, PodStatus.RUNNING)

    async def test_get_missing_pod_returns_none(self):
        with patch.object(self.client, "_run", AsyncMock(return_value="")) as mock_run:
            pod = await self.client.get_pod("sona-onos-1")

        self.assertIsNone(pod)
        self.assertIn("--ignore-not-found", mock_run.call_args[0])

    async def test_malformed_json(self):
        with patch.object(self.client, "_run", AsyncMock(return_value="{not json")):
            with self.assertRaises(StandardError) as ctx:
                await self.client.list_pods()

        self.assertEqual(ctx.exception.code, ErrorCode.KUBERNETES_API)

    async def test_delete_pod_does_not_wait(self):
        with patch.object(self.client, "_run", AsyncMock(return_value='pod "sona-onos-0" deleted')) as mock_run:
            await self.client.delete_pod("sona-onos-0")

        args = mock_run.call_args[0]
        self.assertEqual(args[:4], ("delete_pod", "delete", "pod", "sona-onos-0"))
        self.assertIn("--wait=false", args)
        self.assertIn("--ignore-not-found", args)


if __name__ == '__main__':
    unittest.main()
