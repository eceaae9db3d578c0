"""Tests for CLI module."""

import json
import logging
from unittest.mock import patch

import pytest

from cloudweave.presentation.cli.cli import async_main, main


class TestCLIHelp:
    """Test all help outputs (no backend needed)."""

    @pytest.mark.asyncio
    async def test_no_command_prints_help(self, capsys):
        assert await async_main([]) == 0
        captured = capsys.readouterr()
        assert "asynchronous provisioning orchestrator" in captured.out

    @pytest.mark.asyncio
    async def test_help_flag(self):
        with pytest.raises(SystemExit, match="0"):
            await async_main(["--help"])

    @pytest.mark.asyncio
    async def test_simulate_help(self, capsys):
        with pytest.raises(SystemExit, match="0"):
            await async_main(["simulate", "--help"])
        assert "--fail-operation" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_verbose_flag(self):
        assert await async_main(["--verbose"]) == 0

    @pytest.mark.asyncio
    async def test_debug_flag(self):
        assert await async_main(["--debug", "--json-logs"]) == 0

    def test_main_exits_with_code(self):
        with patch("sys.argv", ["cloudweave"]), pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 0


class TestShowConfig:
    @pytest.mark.asyncio
    async def test_prints_resolved_config(self, capsys, tmp_path):
        config_file = tmp_path / "cloudweave.json"
        config_file.write_text(json.dumps({"queue": {"default_concurrency": 4}}))

        assert await async_main(["--config", str(config_file), "show-config"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["queue"]["default_concurrency"] == 4
        assert data["backend"]["kind"] == "simulated"


class TestSimulate:
    @pytest.mark.asyncio
    async def test_creates_and_destroys_nodes(self, capsys):
        code = await async_main(["simulate", "--count", "3", "--ports", "22,80"])

        out = capsys.readouterr().out
        assert code == 0
        assert out.count("[+]") == 3
        assert out.count("[*] Destroyed") == 3
        assert "Peak concurrency in zone-a" in out
        assert "'instances': 0" in out

    @pytest.mark.asyncio
    async def test_keep_leaves_nodes(self, capsys):
        code = await async_main(["simulate", "--count", "2", "--keep", "--zone", "zone-b"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Destroyed" not in out
        assert "'instances': 2" in out
        assert "'security_groups': 1" in out

    @pytest.mark.asyncio
    async def test_injected_failure_reports_rollback(self, capsys):
        code = await async_main(
            ["simulate", "--count", "2", "--fail-operation", "create_firewall_rule"]
        )

        out = capsys.readouterr().out
        assert code == 1
        assert out.count("[-]") == 1
        assert "rolled_back" in out
        assert "'addresses': 0" in out

    @pytest.mark.asyncio
    async def test_invalid_ports(self, capsys):
        code = await async_main(["simulate", "--ports", "ssh"])

        assert code == 2
        assert "[-] Invalid arguments" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_unknown_zone_fails_cleanly(self, capsys):
        code = await async_main(["simulate", "--count", "1", "--zone", "zone-x"])

        out = capsys.readouterr().out
        assert code == 1
        assert "could not resolve zone zone-x" in out


class TestLogLevelFromConfig:
    @pytest.mark.asyncio
    async def test_configured_level_is_default(self, tmp_path):
        config_file = tmp_path / "cloudweave.json"
        config_file.write_text(json.dumps({"log_level": "info"}))

        assert await async_main(["--config", str(config_file)]) == 0

        assert logging.getLogger("cloudweave").level == logging.INFO

    @pytest.mark.asyncio
    async def test_flags_override_configured_level(self, tmp_path):
        config_file = tmp_path / "cloudweave.json"
        config_file.write_text(json.dumps({"log_level": "ERROR"}))

        assert await async_main(["--config", str(config_file), "--debug"]) == 0

        assert logging.getLogger("cloudweave").level == logging.DEBUG

    @pytest.mark.asyncio
    async def test_unknown_level_is_rejected(self, tmp_path, capsys):
        config_file = tmp_path / "cloudweave.json"
        config_file.write_text(json.dumps({"log_level": "LOUD"}))

        assert await async_main(["--config", str(config_file), "show-config"]) == 2
        assert "Unknown log level 'LOUD'" in capsys.readouterr().out
