"""
Git Inspector component.

Thin wrapper around the local git executable: current branch, origin remote,
repository detection and the diff against a compare branch.
"""

import subprocess
from pathlib import Path
from typing import List, Optional, Union

from claude_review.utils.logging import get_logger


logger = get_logger(__name__)


class GitError(Exception):
    """Raised when a git command fails."""
    pass


class GitInspector:
    """Runs read-only git commands in a working directory."""

    def __init__(self, cwd: Optional[Union[str, Path]] = None):
        """
        Initialize the inspector.

        Args:
            cwd: Working directory for git commands, current directory if None
        """
        self.cwd = Path(cwd) if cwd is not None else None

    def _run(self, args: List[str]) -> str:
        """
        Run a git command and return its stdout.

        Output is captured in full, so multi-megabyte diffs are not truncated.

        Raises:
            GitError: If git is missing or exits nonzero
        """
        command = ["git", *args]
        logger.debug(f"Running: {' '.join(command)}")

        try:
            result = subprocess.run(
                command,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=True,
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found") from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip() or f"exit code {e.returncode}"
            raise GitError(f"git {' '.join(args)} failed: {detail}") from e

        return result.stdout

    def is_git_repository(self) -> bool:
        """Check whether the working directory is inside a git repository."""
        try:
            self._run(["rev-parse", "--git-dir"])
            return True
        except GitError:
            return False

    def get_current_branch(self) -> str:
        try:
            return self._run(["rev-parse", "--abbrev-ref", "HEAD"]).strip()
        except GitError as e:
            raise GitError(f"Failed to get current branch: {e}") from e

    def get_remote_url(self) -> str:
        try:
            return self._run(["remote", "get-url", "origin"]).strip()
        except GitError as e:
            raise GitError(f"Failed to get remote URL: {e}") from e

    def branch_exists(self, branch: str) -> bool:
        try:
            self._run(["rev-parse", "--verify", branch])
            return True
        except GitError:
            return False

    def get_diff(self, compare_branch: str) -> str:
        """
        Diff of HEAD against the merge base with ``compare_branch``.

        Args:
            compare_branch: Branch to compare against

        Returns:
            Raw unified diff text
        """
        try:
            diff = self._run(["diff", f"{compare_branch}...HEAD"])
        except GitError as e:
            raise GitError(f"Failed to get git diff: {e}") from e

        logger.debug(f"Retrieved diff against {compare_branch}: {len(diff)} characters")
        return diff
