"""
External Tools for OMWModManager
Runs command-line tools (mlox, the OpenMW launcher) and turns failures
into ExternalToolError.
"""

import sys
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

# Module logger
log = logging.getLogger("omwmodmanager.external_tools")

OUTPUT_ENCODING = "utf-8"


class ExternalToolError(RuntimeError):
    """A tool could not be started, exited non-zero or reported errors."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


@dataclass
class ExternalTool:
    """An executable plus fixed arguments."""
    executable: Path
    args: Sequence[str] = field(default_factory=tuple)
    fail_on_stderr: bool = False

    @property
    def name(self) -> str:
        return Path(self.executable).name

    def command(self, extra_args: Sequence[str] = ()) -> list[str]:
        """Full command line; Python scripts run through the current interpreter."""
        command = [str(self.executable), *self.args, *extra_args]
        if Path(self.executable).suffix.lower() == ".py":
            command.insert(0, sys.executable)
        return command

    def run(self, extra_args: Sequence[str] = (), *, cwd: Optional[Path] = None) -> str:
        """
        Run the tool to completion and return its stdout.

        Raises:
            ExternalToolError: spawn failure, non-zero exit, or stderr
                output when fail_on_stderr is set.
        """
        command = self.command(extra_args)
        log.debug(f"Running: {' '.join(command)}")

        try:
            result = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                encoding=OUTPUT_ENCODING,
                errors="replace",
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise ExternalToolError(f"Failed to start {self.name}: {e}") from e

        if result.returncode != 0:
            raise ExternalToolError(
                f"{self.name} exited with code {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr,
            )

        if result.stderr.strip():
            if self.fail_on_stderr:
                raise ExternalToolError(
                    f"{self.name} reported errors: {result.stderr.strip()}",
                    returncode=result.returncode,
                    stderr=result.stderr,
                )
            log.warning(f"{self.name} stderr: {result.stderr.strip()}")

        return result.stdout
