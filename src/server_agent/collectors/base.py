"""
Base collector class that all collectors inherit from.
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from server_agent.errors import CollectionError, ErrorKind

if TYPE_CHECKING:
    from server_agent.config import Config

logger = logging.getLogger(__name__)


class BaseCollector(ABC):
    """
    Abstract base class for all data collectors.

    Subclasses must implement the `collect` method to gather
    their specific data. Failures are never raised out of `collect`;
    they are logged and kept on `errors` so the caller can report them.
    """

    name: str = "base"
    description: str = "Base collector"

    def __init__(self, config: Config | None = None):
        if config is None:
            from server_agent.config import Config

            config = Config()
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.{self.name}")
        self.errors: list[CollectionError] = []

    @abstractmethod
    def collect(self) -> dict[str, Any]:
        """
        Collect and return data.

        Returns:
            Dictionary of collected data. Structure depends on collector type.
        """
        pass

    def record_error(self, kind: ErrorKind, message: str) -> None:
        """Log a failure and keep it for the payload."""
        self.logger.warning(message)
        self.errors.append(CollectionError(kind=kind, message=message))

    def run_command(
        self,
        cmd: list[str],
        timeout: int | float = 30,
    ) -> tuple[str, str, int]:
        """
        Run a command and return output.

        Args:
            cmd: Command and arguments as list.
            timeout: Timeout in seconds.

        Returns:
            Tuple of (stdout, stderr, returncode). returncode is -1 when
            the command could not be run or timed out.
        """
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
            return result.stdout, result.stderr, result.returncode
        except subprocess.TimeoutExpired:
            self.logger.warning(f"Command timed out: {' '.join(cmd)}")
            return "", "Command timed out", -1
        except FileNotFoundError:
            self.logger.warning(f"Command not found: {cmd[0]}")
            return "", f"Command not found: {cmd[0]}", -1
        except PermissionError:
            self.logger.warning(f"Permission denied running: {cmd[0]}")
            return "", f"Permission denied: {cmd[0]}", -1

    def read_file(self, path: str, default: str = "") -> str:
        """
        Read a file and return its contents.

        Args:
            path: Path to the file.
            default: Default value if file cannot be read.

        Returns:
            File contents or default value.
        """
        try:
            with open(path) as f:
                return f.read()
        except OSError as e:
            self.logger.debug(f"Could not read {path}: {e}")
            return default

    def read_file_lines(self, path: str) -> list[str]:
        """Read a file and return lines as list."""
        content = self.read_file(path)
        if content:
            return content.strip().split("\n")
        return []
