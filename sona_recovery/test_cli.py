"""
Tests for the command line interface.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, Mock, patch

import pytest
import yaml

from . import cli
from .controller import CallResult
from .errors import new_backup_invalid_error, new_cancelled_error, new_pod_stuck_error


def make_result(success=True, error=None, failed_calls=(), snapshot_purged=True):
    return Mock(success=success, error=error, failed_calls=list(failed_calls),
                duration=timedelta(seconds=42), snapshot_path="network-cfg.json",
                snapshot_purged=snapshot_purged)


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep the default config search away from the developer's files."""
    for var in ("ARP_MODE", "ONOS_PASSWORD", "SONA_PODS", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestArgumentParser:

    @pytest.mark.parametrize("flag", ["-h", "-?", "--help"])
    def test_help_exits_zero(self, flag, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.main([flag])

        assert exc.value.code == 0
        out = capsys.readouterr().out
        assert "usage: sona-recovery" in out
        assert "6. Reinstall all flow rules into OpenvSwitch." in out

    def test_rejects_unknown_arp_mode(self):
        with pytest.raises(SystemExit) as exc:
            cli.main(["--arp-mode", "flood"])

        assert exc.value.code == 2

    def test_defaults(self):
        args = cli.create_argument_parser().parse_args([])

        assert args.config is None
        assert args.verbose is False
        assert args.arp_mode is None
        assert args.show_config is False


class TestShowConfig:

    def test_masks_password(self, capsys):
        assert cli.main(["--show-config"]) == 0

        data = yaml.safe_load(capsys.readouterr().out)
        assert data["controller"]["password"] == "********"
        assert data["topology"]["controllers"] == ["sona-onos-0", "sona-onos-1", "sona-onos-2"]

    def test_reads_config_file_and_arp_override(self, isolated_cwd, capsys):
        config_file = isolated_cwd / "custom.yaml"
        config_file.write_text(yaml.safe_dump({"topology": {"namespace": "sona"}}))

        assert cli.main(["-c", str(config_file), "--arp-mode", "proxy", "--show-config"]) == 0

        data = yaml.safe_load(capsys.readouterr().out)
        assert data["topology"]["namespace"] == "sona"
        assert data["recovery"]["arp_mode"] == "proxy"


class TestMain:

    def test_missing_config_file(self, capsys):
        assert cli.main(["-c", "does-not-exist.yaml"]) == 1
        assert "does not exist" in capsys.readouterr().err

    def test_invalid_config_file(self, isolated_cwd, capsys):
        config_file = isolated_cwd / "bad.yaml"
        config_file.write_text(yaml.safe_dump({"controller": {"port": 0}}))

        assert cli.main(["-c", str(config_file)]) == 1
        assert "controller.port" in capsys.readouterr().err

    def test_success(self, capsys):
        with patch.object(cli, "run_recovery", AsyncMock(return_value=make_result())) as mock_run:
            assert cli.main(["--arp-mode", "proxy"]) == 0

        config = mock_run.call_args[0][0]
        assert config.recovery.arp_mode == "proxy"
        assert "completed" in capsys.readouterr().out

    def test_success_reports_failed_calls(self, capsys):
        failed = CallResult(operation="sync_rules", url="http://10.0.0.1:8181", success=False, status=500)
        with patch.object(cli, "run_recovery", AsyncMock(return_value=make_result(failed_calls=[failed]))):
            assert cli.main([]) == 0

        assert "sync_rules -> HTTP 500" in capsys.readouterr().out

    def test_reports_leftover_snapshot(self, capsys):
        with patch.object(cli, "run_recovery", AsyncMock(return_value=make_result(snapshot_purged=False))):
            assert cli.main([]) == 0

        assert "snapshot network-cfg.json could not be removed" in capsys.readouterr().out

    def test_no_snapshot_warning_after_purge(self, capsys):
        with patch.object(cli, "run_recovery", AsyncMock(return_value=make_result())):
            cli.main([])

        assert "could not be removed" not in capsys.readouterr().out

    def test_backup_invalid(self, capsys):
        error = new_backup_invalid_error("network-cfg.json", "snapshot network-cfg.json is empty")
        with patch.object(cli, "run_recovery", AsyncMock(return_value=make_result(False, error))):
            assert cli.main([]) == 1

        assert "No pod was touched" in capsys.readouterr().out

    def test_fatal_error(self):
        error = new_pod_stuck_error("sona-onos-0", "pod sona-onos-0 did not reach Running within 60s")
        with patch.object(cli, "run_recovery", AsyncMock(return_value=make_result(False, error))):
            assert cli.main([]) == 1

    def test_cancelled(self):
        error = new_cancelled_error("wait_for_pods")
        with patch.object(cli, "run_recovery", AsyncMock(return_value=make_result(False, error))):
            assert cli.main([]) == 130
