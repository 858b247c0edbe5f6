"""Tests for config CLI command."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from cronbridge.cli.exit_codes import ExitCode
from cronbridge.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the default config location at an empty directory."""
    monkeypatch.setenv("CRONBRIDGE_CONFIG_DIR", str(tmp_path))
    with patch("cronbridge.main._setup_logging"):
        yield


class TestShowCommand:
    """Tests for config show."""

    def test_show_table(self) -> None:
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "sync.backend" in result.output
        assert "memory" in result.output

    def test_show_json(self, tmp_path) -> None:
        config_file = tmp_path / "custom.toml"
        config_file.write_text('[scheduler]\nmax_instances = 7\n')

        result = runner.invoke(app, ["config", "show", "--config", str(config_file), "--format", "json"])

        assert result.exit_code == ExitCode.SUCCESS
        assert '"max_instances": 7' in result.output

    def test_show_yaml(self) -> None:
        result = runner.invoke(app, ["config", "show", "--format", "yaml"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "index_path" in result.output

    def test_unknown_format(self) -> None:
        result = runner.invoke(app, ["config", "show", "--format", "xml"])
        assert result.exit_code == ExitCode.CONFIGURATION_ERROR

    def test_broken_file(self, tmp_path) -> None:
        (tmp_path / "config.toml").write_text("[sync\n")

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == ExitCode.CONFIGURATION_ERROR


class TestValidateCommand:
    """Tests for config validate."""

    def test_warnings_only(self) -> None:
        """Test that warnings do not fail validation."""
        result = runner.invoke(app, ["config", "validate"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Configuration is valid" in result.output

    def test_errors(self, tmp_path) -> None:
        (tmp_path / "config.toml").write_text('[sync]\nbackend = "carrier-pigeon"\n')

        result = runner.invoke(app, ["config", "validate"])

        assert result.exit_code == ExitCode.CONFIGURATION_ERROR
        assert "sync.backend" in result.output
