"""Tests for the reconciler command-line entry point."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from cache_patterns import cli
from cache_patterns.models import ReconcileResult, ReconcileStatus


class TestArgumentParsing:
    """Test cases for argument handling."""

    def test_requires_command(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_options_override_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RECONCILE_INTERVAL_SECONDS", "30")
        monkeypatch.setenv("CACHE_LAYER_KEY_PREFIX", "members")
        args = cli.build_parser().parse_args(
            ["reconcile", "--interval", "2", "--db", "x.db", "--redis-url", "redis://h:1/0"]
        )

        config = cli.config_from_args(args)

        assert config.reconcile_interval_seconds == 2.0
        assert config.db_path == Path("x.db")
        assert config.redis_url == "redis://h:1/0"
        assert config.key_prefix == "members"

    def test_unset_options_keep_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RECONCILE_WRITE_TIMEOUT_SECONDS", "0.75")
        args = cli.build_parser().parse_args(["drain"])
        assert cli.config_from_args(args).write_timeout_seconds == 0.75


class TestDrainCommand:
    """Test cases for the one-shot drain command."""

    def test_drain_prints_result(self, capsys: pytest.CaptureFixture[str]) -> None:
        result = ReconcileResult(status=ReconcileStatus.DRAINED, written=2)
        with patch.object(cli, "CacheLayer") as layer_cls:
            layer = layer_cls.from_config.return_value
            layer.open = AsyncMock()
            layer.close = AsyncMock()
            layer.reconciler.tick = AsyncMock(return_value=result)

            exit_code = cli.main(["drain", "--log-level", "WARNING"])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out)["written"] == 2
        layer.open.assert_awaited_once_with(start_reconciler=False)
        layer.close.assert_awaited_once()

    def test_failed_drain_exits_non_zero(self) -> None:
        result = ReconcileResult(status=ReconcileStatus.FAILED, error="store down")
        with patch.object(cli, "CacheLayer") as layer_cls:
            layer = layer_cls.from_config.return_value
            layer.open = AsyncMock()
            layer.close = AsyncMock()
            layer.reconciler.tick = AsyncMock(return_value=result)

            assert cli.main(["drain"]) == 1
