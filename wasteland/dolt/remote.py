"""Dolt remote operations."""

from pathlib import Path

from wasteland.dolt.runner import run_dolt, DoltResult, NETWORK_TIMEOUT


def list_remotes(db_dir: Path) -> list[str]:
    """Names of configured remotes."""
    result = run_dolt(["remote", "-v"], db_dir)
    if not result.success:
        return []
    names = []
    for line in result.stdout.splitlines():
        parts = line.split()
        if parts and parts[0] not in names:
            names.append(parts[0])
    return names


def fetch(db_dir: Path, remote: str) -> DoltResult:
    """Fetch refs from remote without merging."""
    return run_dolt(["fetch", remote], db_dir, timeout=NETWORK_TIMEOUT)


def pull(db_dir: Path, remote: str, branch: str = "main") -> DoltResult:
    """Pull remote branch into the current branch."""
    return run_dolt(["pull", remote, branch], db_dir, timeout=NETWORK_TIMEOUT)


def push(db_dir: Path, remote: str, branch: str, force: bool = False) -> DoltResult:
    """Push a branch to a remote."""
    args = ["push"]
    if force:
        args.append("--force")
    args += [remote, branch]
    return run_dolt(args, db_dir, timeout=NETWORK_TIMEOUT)


def delete_remote_branch(db_dir: Path, remote: str, branch: str) -> DoltResult:
    """Delete a branch on a remote (push of an empty ref)."""
    return run_dolt(["push", remote, f":{branch}"], db_dir, timeout=NETWORK_TIMEOUT)
