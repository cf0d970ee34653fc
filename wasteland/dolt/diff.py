"""Dolt diff operations."""

from pathlib import Path

from wasteland.dolt.runner import run_dolt, DoltResult

VALID_DIFF_FORMATS = {"text", "stat", "sql", "json"}


def diff(db_dir: Path, base: str, branch: str, fmt: str = "text") -> DoltResult:
    """
    Three-dot diff of branch against base.

    Three-dot compares refs directly, so the result does not depend on the
    current checkout.
    """
    if fmt not in VALID_DIFF_FORMATS:
        raise ValueError(f"Unknown diff format: {fmt}")
    args = ["diff"]
    if fmt == "stat":
        args.append("--stat")
    elif fmt in ("sql", "json"):
        args += ["-r", fmt]
    args.append(f"{base}...{branch}")
    return run_dolt(args, db_dir)
