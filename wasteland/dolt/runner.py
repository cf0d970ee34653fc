"""Dolt command runner with timeout handling."""

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TIMEOUT = 30

# Network operations (push/pull/fetch) get a longer bound
NETWORK_TIMEOUT = 60

DOLT_INSTALL_URL = "https://docs.dolthub.com/introduction/installation"


@dataclass
class DoltResult:
    """Result of a dolt command."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Combined output, trimmed, for error messages."""
        return "\n".join(s.strip() for s in (self.stdout, self.stderr) if s.strip())


def dolt_available() -> bool:
    """Check if the dolt binary is on PATH."""
    return shutil.which("dolt") is not None


def run_dolt(
    args: list[str],
    cwd: Path,
    timeout: float = DEFAULT_TIMEOUT,
    input: str | None = None,
) -> DoltResult:
    """
    Run a dolt command with timeout handling.

    Args:
        args: Dolt command arguments (e.g., ["checkout", "main"])
        cwd: Database directory (dolt has no -C flag, so this is the process cwd)
        timeout: Timeout in seconds
        input: Optional text fed to stdin (used for SQL scripts)

    Returns:
        DoltResult with returncode, stdout, stderr, and timed_out flag
    """
    cmd = ["dolt"] + args
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            cwd=str(cwd),
            timeout=timeout,
            input=input,
        )
        return DoltResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    except subprocess.TimeoutExpired:
        return DoltResult(
            returncode=-1,
            stdout="",
            stderr=f"Command timed out after {timeout}s",
            timed_out=True,
        )
    except FileNotFoundError:
        return DoltResult(
            returncode=127,
            stdout="",
            stderr=f"dolt not found in PATH (install: {DOLT_INSTALL_URL})",
        )
