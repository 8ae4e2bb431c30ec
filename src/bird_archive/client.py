"""Client for the external `bird` command-line tool.

bird talks to Twitter/X on our behalf and prints bookmarks as plain text
(see parser.py for the format). Two invocations are used:

    bird bookmarks -n <count>   bulk fetch, 30s timeout
    bird whoami                 connectivity probe, 10s timeout

The executable can be overridden with the BIRD_COMMAND environment variable
or the [bird] command config key.
"""

import logging
import os
import subprocess
from dataclasses import dataclass

from .errors import ExternalToolError

logger = logging.getLogger(__name__)

BIRD_COMMAND = os.environ.get("BIRD_COMMAND", "bird")
FETCH_TIMEOUT = 30.0
PROBE_TIMEOUT = 10.0


@dataclass
class ConnectionStatus:
    success: bool
    message: str


class BirdClient:
    """Runs bird as a subprocess with bounded timeouts."""

    def __init__(
        self,
        command: str | None = None,
        fetch_timeout: float = FETCH_TIMEOUT,
        probe_timeout: float = PROBE_TIMEOUT,
    ):
        self._command = command or BIRD_COMMAND
        self._fetch_timeout = fetch_timeout
        self._probe_timeout = probe_timeout

    @property
    def command(self) -> str:
        return self._command

    def fetch_bookmarks(self, count: int = 50) -> str:
        """Fetch the latest `count` bookmarks as raw bird output.

        Raises:
            ValueError: If count is not a positive integer.
            ExternalToolError: If bird is missing, times out, or exits non-zero.
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ValueError(f"count must be a positive integer, got {count!r}")

        logger.info("Fetching %d bookmarks from %s...", count, self._command)
        return self._run(["bookmarks", "-n", str(count)], self._fetch_timeout)

    def test_connection(self) -> ConnectionStatus:
        """Probe bird with `whoami`. Never raises."""
        try:
            output = self._run(["whoami"], self._probe_timeout)
        except ExternalToolError as e:
            return ConnectionStatus(success=False, message=str(e))
        who = output.strip().splitlines()[0] if output.strip() else ""
        message = f"Connected to {self._command} CLI"
        if who:
            message = f"{message} ({who})"
        return ConnectionStatus(success=True, message=message)

    def _run(self, args: list[str], timeout: float) -> str:
        argv = [self._command, *args]
        logger.debug("Running %s (timeout %.0fs)", " ".join(argv), timeout)
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as e:
            logger.error("%s not found on PATH", self._command)
            raise ExternalToolError(
                f"Command not found: {self._command}. "
                "Install bird or set [bird] command in the config.",
                reason="missing",
            ) from e
        except subprocess.TimeoutExpired as e:
            logger.error("%s timed out after %.0fs", " ".join(argv), timeout)
            stderr = e.stderr or ""
            if isinstance(stderr, bytes):
                stderr = stderr.decode("utf-8", errors="replace")
            raise ExternalToolError(
                f"`{' '.join(argv)}` timed out after {timeout:.0f}s",
                reason="timeout",
                stderr=stderr,
            ) from e

        if result.returncode != 0:
            logger.error(
                "%s exited with status %d", " ".join(argv), result.returncode
            )
            raise ExternalToolError(
                f"`{' '.join(argv)}` failed with exit status {result.returncode}",
                reason="exit",
                stderr=result.stderr or "",
            )

        return result.stdout
