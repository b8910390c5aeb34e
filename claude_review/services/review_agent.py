"""
Review Agent component.

Runs the Claude Code CLI with a review prompt on stdin. The agent writes the
review to ``claude-review.md`` in the working directory; its JSON stdout only
carries usage telemetry.
"""

import asyncio
import os
import shutil
import time
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pydantic import ValidationError

from claude_review.models.review import REVIEW_FILE_NAME, AgentUsage
from claude_review.utils.logging import get_logger


logger = get_logger(__name__)


ALLOWED_TOOLS = "Bash(git *) Read Write Grep Glob TodoWrite"

COMMON_CLAUDE_PATHS = (
    "~/.claude/local/claude",
    "/usr/local/bin/claude",
    "~/.bun/bin/claude",
    "~/.local/bin/claude",
)


class ReviewAgentError(Exception):
    """Raised when the review agent cannot produce a usable review."""
    pass


def build_prompt(prompt_content: str, git_diff: str, compare_branch: str) -> str:
    """
    Compose the full prompt sent to the agent.

    Args:
        prompt_content: Review instructions from the prompt file
        git_diff: Sanitized diff text
        compare_branch: Branch the changes are compared against

    Returns:
        Prompt text for the agent's stdin
    """
    context = (
        "# Code Review Context\n"
        "\n"
        "## Changes Overview\n"
        f"Comparing current branch against: `{compare_branch}`\n"
        "\n"
        "## Git Diff\n"
        "```diff\n"
        f"{git_diff}\n"
        "```\n"
        "\n"
        "Please review these changes according to the prompt instructions.\n"
        "\n"
        "Some notes:\n"
        "- don't leave a grade or rating in the review\n"
    )

    return (
        f"{prompt_content}\n\n{context}\n\n"
        f'Please write your review directly to a file called "{REVIEW_FILE_NAME}" in the current directory.'
    )


def find_claude_executable(configured_path: Optional[str] = None) -> str:
    """
    Locate the Claude Code CLI.

    Order: explicit configuration, ``claude`` on PATH, then the usual install
    locations. Falls back to plain ``claude``.
    """
    if configured_path:
        return configured_path

    on_path = shutil.which("claude")
    if on_path:
        return on_path

    for candidate in COMMON_CLAUDE_PATHS:
        path = Path(candidate).expanduser()
        if path.exists():
            return str(path)

    return "claude"


def parse_usage(output: str) -> Optional[AgentUsage]:
    """Parse agent telemetry, returning None when stdout is not usable JSON."""
    if not output.strip():
        return None
    try:
        return AgentUsage.model_validate_json(output)
    except (ValidationError, ValueError) as e:
        logger.debug(f"Could not parse agent metrics: {e}")
        return None


def read_review_file(review_file: Union[str, Path]) -> str:
    """
    Read the review produced by the agent.

    Raises:
        ReviewAgentError: If the file is missing, unreadable or empty
    """
    path = Path(review_file)
    if not path.exists():
        raise ReviewAgentError(
            "Claude did not create the review file. Make sure Claude has write permissions."
        )

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ReviewAgentError(f"Failed to read review file: {e}") from e

    if not content.strip():
        raise ReviewAgentError("Failed to read review file: Review file is empty")

    return content


class ReviewAgent:
    """Invokes the external review agent for a working directory."""

    def __init__(self, cwd: Union[str, Path], claude_path: Optional[str] = None):
        """
        Initialize the agent invoker.

        Args:
            cwd: Directory the agent runs in and writes its review to
            claude_path: Explicit executable path, looked up when None
        """
        self.cwd = Path(cwd)
        self.claude_path = find_claude_executable(claude_path)

    @property
    def review_file(self) -> Path:
        return self.cwd / REVIEW_FILE_NAME

    def command(self) -> List[str]:
        return [self.claude_path, "--allowedTools", ALLOWED_TOOLS, "--output-format", "json"]

    async def run(
        self,
        prompt_file: Union[str, Path],
        git_diff: str,
        compare_branch: str
    ) -> Tuple[Path, Optional[AgentUsage]]:
        """
        Run the agent and wait for it to finish.

        There is no timeout; a hanging agent hangs the run.

        Args:
            prompt_file: File with the review instructions
            git_diff: Sanitized diff text
            compare_branch: Branch the changes are compared against

        Returns:
            Tuple of (review file path, usage telemetry or None)

        Raises:
            ReviewAgentError: If the prompt file is missing or the agent fails
        """
        prompt_path = Path(prompt_file)
        if not prompt_path.exists():
            raise ReviewAgentError(f"Prompt file not found: {prompt_path}")

        prompt_content = prompt_path.read_text(encoding="utf-8")
        full_prompt = build_prompt(prompt_content, git_diff, compare_branch)
        command = self.command()

        logger.info(
            f"Running review agent: {' '.join(command)}",
            extra={"phase": "review", "prompt_file": str(prompt_path), "prompt_chars": len(full_prompt)}
        )
        start_time = time.time()

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=self.cwd,
                env=dict(os.environ),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ReviewAgentError(f"Claude execution failed: {e}") from e

        stdout, stderr = await process.communicate(full_prompt.encode("utf-8"))
        duration_ms = (time.time() - start_time) * 1000

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip() or f"exit code {process.returncode}"
            raise ReviewAgentError(f"Claude execution failed: {detail}")

        logger.info(
            "Review agent finished",
            extra={"phase": "review", "duration_ms": round(duration_ms, 2)}
        )

        usage = parse_usage(stdout.decode("utf-8", errors="replace"))
        return self.review_file, usage
