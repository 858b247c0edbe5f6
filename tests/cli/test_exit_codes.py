"""Tests for exit codes module."""

import pytest

from cronbridge.cli.exit_codes import ExitCode


class TestExitCode:
    """Test exit code constants."""

    def test_success_code(self) -> None:
        """Test success exit code."""
        assert ExitCode.SUCCESS == 0

    def test_general_error_code(self) -> None:
        """Test general error exit code."""
        assert ExitCode.GENERAL_ERROR == 1

    def test_configuration_error_code(self) -> None:
        """Test configuration error exit code."""
        assert ExitCode.CONFIGURATION_ERROR == 2

    def test_sync_error_code(self) -> None:
        """Test sync client error exit code."""
        assert ExitCode.SYNC_ERROR == 5

    def test_invalid_argument_code(self) -> None:
        """Test invalid argument exit code."""
        assert ExitCode.INVALID_ARGUMENT == 7

    def test_not_found_code(self) -> None:
        """Test not found exit code."""
        assert ExitCode.NOT_FOUND == 8

    def test_cancelled_code(self) -> None:
        """Test cancelled exit code (SIGINT)."""
        assert ExitCode.CANCELLED == 130


class TestExitCodeNames:
    """Test exit code name and description lookup."""

    @pytest.mark.parametrize(
        "code,name",
        [
            (0, "SUCCESS"),
            (1, "GENERAL_ERROR"),
            (2, "CONFIGURATION_ERROR"),
            (5, "SYNC_ERROR"),
            (7, "INVALID_ARGUMENT"),
            (8, "NOT_FOUND"),
            (130, "CANCELLED"),
        ],
    )
    def test_get_name(self, code: int, name: str) -> None:
        assert ExitCode.get_name(code) == name

    def test_unknown_name(self) -> None:
        assert ExitCode.get_name(99) == "UNKNOWN(99)"

    def test_get_description(self) -> None:
        assert ExitCode.get_description(ExitCode.SYNC_ERROR) == "Job registry or sync client error"

    def test_unknown_description(self) -> None:
        assert ExitCode.get_description(99) == "Unknown exit code: 99"
