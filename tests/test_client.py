"""Tests for the bird CLI client."""

import subprocess
from unittest.mock import patch

import pytest

from bird_archive.client import BirdClient
from bird_archive.errors import ExternalToolError


def completed(stdout: str = "", stderr: str = "", returncode: int = 0):
    return subprocess.CompletedProcess(
        args=["bird"], returncode=returncode, stdout=stdout, stderr=stderr
    )


class TestFetchBookmarks:
    @patch("bird_archive.client.subprocess.run")
    def test_returns_stdout(self, mock_run, bird_output):
        mock_run.return_value = completed(stdout=bird_output)

        output = BirdClient("bird").fetch_bookmarks(20)

        assert output == bird_output
        args, kwargs = mock_run.call_args
        assert args[0] == ["bird", "bookmarks", "-n", "20"]
        assert kwargs["timeout"] == 30.0
        assert kwargs["capture_output"] is True

    @patch("bird_archive.client.subprocess.run")
    def test_custom_command_and_timeout(self, mock_run):
        mock_run.return_value = completed(stdout="")

        BirdClient("/opt/bird/bin/bird", fetch_timeout=5.0).fetch_bookmarks(1)

        args, kwargs = mock_run.call_args
        assert args[0][0] == "/opt/bird/bin/bird"
        assert kwargs["timeout"] == 5.0

    @patch("bird_archive.client.subprocess.run")
    def test_nonzero_exit_raises_with_stderr(self, mock_run):
        mock_run.return_value = completed(
            stderr="Error: not logged in\n", returncode=2
        )

        with pytest.raises(ExternalToolError, match="not logged in") as exc_info:
            BirdClient("bird").fetch_bookmarks(10)

        assert exc_info.value.reason == "exit"
        assert exc_info.value.stderr == "Error: not logged in\n"
        assert "exit status 2" in str(exc_info.value)

    @patch("bird_archive.client.subprocess.run")
    def test_timeout_raises(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(
            cmd=["bird", "bookmarks", "-n", "10"], timeout=30.0
        )

        with pytest.raises(ExternalToolError, match="timed out") as exc_info:
            BirdClient("bird").fetch_bookmarks(10)

        assert exc_info.value.reason == "timeout"

    @patch("bird_archive.client.subprocess.run")
    def test_timeout_keeps_partial_stderr(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(
            cmd=["bird"], timeout=30.0, stderr=b"waiting for rate limit"
        )

        with pytest.raises(ExternalToolError, match="waiting for rate limit"):
            BirdClient("bird").fetch_bookmarks(10)

    @patch("bird_archive.client.subprocess.run")
    def test_missing_command_raises(self, mock_run):
        mock_run.side_effect = FileNotFoundError("bird")

        with pytest.raises(ExternalToolError, match="Command not found") as exc_info:
            BirdClient("bird").fetch_bookmarks(10)

        assert exc_info.value.reason == "missing"

    @pytest.mark.parametrize("count", [0, -5, True, "10", 2.5])
    def test_invalid_count(self, count):
        with pytest.raises(ValueError):
            BirdClient("bird").fetch_bookmarks(count)


class TestConnection:
    @patch("bird_archive.client.subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = completed(stdout="@alice (Alice A)\n")

        status = BirdClient("bird").test_connection()

        assert status.success is True
        assert "@alice" in status.message
        args, kwargs = mock_run.call_args
        assert args[0] == ["bird", "whoami"]
        assert kwargs["timeout"] == 10.0

    @patch("bird_archive.client.subprocess.run")
    def test_failure_does_not_raise(self, mock_run):
        mock_run.return_value = completed(stderr="expired cookies", returncode=1)

        status = BirdClient("bird").test_connection()

        assert status.success is False
        assert "expired cookies" in status.message

    @patch("bird_archive.client.subprocess.run")
    def test_missing_command(self, mock_run):
        mock_run.side_effect = FileNotFoundError("bird")

        status = BirdClient("bird").test_connection()

        assert status.success is False
        assert "Command not found" in status.message
