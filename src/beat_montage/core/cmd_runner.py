import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..logger import logger


class CommandError(Exception):
    """A subprocess exited non-zero."""

    def __init__(self, cmd: Sequence[str], returncode: int, stdout: str, stderr: str):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"{self.cmd[0]} exited with code {returncode}")

    @property
    def stderr_tail(self) -> str:
        """Last lines of stderr, where FFmpeg puts the actual error."""
        lines = (self.stderr or "").strip().splitlines()
        return "\n".join(lines[-10:])


def run_command(
    cmd: List[str],
    cwd: Optional[Union[str, Path]] = None,
    timeout: Optional[float] = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run an external tool with captured text output.

    Args:
        cmd: Argument vector; never passed through a shell.
        cwd: Working directory.
        timeout: Seconds before subprocess.TimeoutExpired is raised.
        check: Raise CommandError on a non-zero exit code.
    """
    cmd_str = " ".join(str(x) for x in cmd)
    logger.debug(f"Running command: {cmd_str}")

    try:
        result = subprocess.run(
            [str(x) for x in cmd],
            cwd=cwd,
            timeout=timeout,
            check=False,
            capture_output=True,
            text=True,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s: {cmd[0]}")
        raise

    if check and result.returncode != 0:
        raise CommandError(cmd, result.returncode, result.stdout, result.stderr)
    return result
