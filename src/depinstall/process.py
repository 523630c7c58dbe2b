"""Synchronous external command runner used by the VCS downloaders."""

import logging
import re
import subprocess
from collections.abc import Sequence
from pathlib import Path

from .exceptions import ProcessTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300

_LINE_SPLIT = re.compile(r"\r?\n")


class ProcessExecutor:
    """
    Run one command at a time and keep its output for the caller.

    String commands go through the shell (so compound ``a && b`` commands
    work), sequences are executed directly. Stderr is always captured;
    stdout is captured only on request and otherwise streams to the console.
    """

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT):
        """Initialize executor.

        Args:
            timeout: Seconds before a command is killed (None disables the limit)
        """
        self.timeout = timeout
        self.output: str | None = None
        self.error_output: str | None = None

    def execute(
        self,
        command: str | Sequence[str],
        cwd: Path | str | None = None,
        capture_output: bool = False,
    ) -> int:
        """
        Run a command and wait for it to finish.

        Args:
            command: Shell command string or argument sequence
            cwd: Working directory
            capture_output: Keep stdout in ``self.output`` instead of echoing it

        Returns:
            Process exit code (0 on success, 127 when the command or cwd is missing)

        Raises:
            ProcessTimeoutError: If the command exceeds the timeout
        """
        self.output = None
        self.error_output = None
        shell = isinstance(command, str)
        logger.debug(f"Executing command ({cwd or 'CWD'}): {command}")

        try:
            result = subprocess.run(
                command if shell else list(command),
                shell=shell,
                cwd=str(cwd) if cwd is not None else None,
                stdout=subprocess.PIPE if capture_output else None,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except OSError as e:
            # missing executable or cwd, reported like the shell does
            logger.debug(f"Could not start command {command}: {e}")
            self.error_output = str(e)
            if capture_output:
                self.output = ""
            return 127
        except subprocess.TimeoutExpired as e:
            self.error_output = _decode(e.stderr)
            raise ProcessTimeoutError(
                f'The process "{command}" exceeded the timeout of {self.timeout} seconds.',
                context={"command": str(command), "cwd": str(cwd) if cwd else None},
            ) from e

        if capture_output:
            self.output = result.stdout
        self.error_output = result.stderr
        return result.returncode

    def get_error_output(self) -> str:
        """Stderr of the last command ("" before any command ran)."""
        return self.error_output or ""

    @staticmethod
    def split_lines(output: str | None) -> list[str]:
        """Split command output into lines; empty output gives no lines."""
        if not output:
            return []
        return _LINE_SPLIT.split(output)


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode(errors="replace")
    return data
