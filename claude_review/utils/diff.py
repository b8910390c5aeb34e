"""
Diff sanitizing before handing changes to the review agent.
"""

from typing import Iterable


LOCK_FILES = (
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
    "Cargo.lock",
    "Gemfile.lock",
    "composer.lock",
    "Pipfile.lock",
    "poetry.lock",
)

FILE_HEADER_PREFIX = "diff --git"


def remove_lockfile_changes(diff_text: str, lock_files: Iterable[str] = LOCK_FILES) -> str:
    """
    Drop every per-file segment of a unified diff that touches a lockfile.

    A segment starts at a ``diff --git`` header line and runs until the next
    one. Segments whose header mentions a lockfile name are skipped entirely.

    Args:
        diff_text: Raw ``git diff`` output
        lock_files: File names to filter out

    Returns:
        Diff text without lockfile segments
    """
    lock_files = tuple(lock_files)
    kept = []
    skip_file = False

    for line in diff_text.split("\n"):
        if line.startswith(FILE_HEADER_PREFIX):
            skip_file = any(lock_file in line for lock_file in lock_files)
        if not skip_file:
            kept.append(line)

    return "\n".join(kept)
