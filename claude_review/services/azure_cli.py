"""
Azure CLI component.

Uses a separately installed ``az`` (with the azure-devops extension) to list
pull requests for the repository it auto-detects from the working directory.
"""

import json
import subprocess
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from claude_review.utils.logging import get_logger, log_api_call


logger = get_logger(__name__)


class AzureCliError(Exception):
    """Raised when the az CLI is unavailable or a command fails."""
    pass


class AzureCli:
    """Runs ``az repos pr`` commands and decodes their JSON output."""

    def __init__(self, cwd: Optional[Union[str, Path]] = None, executable: str = "az"):
        self.cwd = Path(cwd) if cwd is not None else None
        self.executable = executable

    def _run(self, args: List[str]) -> str:
        command = [self.executable, *args]
        start_time = time.time()

        try:
            result = subprocess.run(
                command,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise AzureCliError("Azure CLI (az) is not installed") from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip() or f"exit code {e.returncode}"
            log_api_call(
                logger,
                service="azure_cli",
                endpoint=" ".join(args[:3]),
                method="CLI",
                duration_ms=(time.time() - start_time) * 1000,
                error=detail
            )
            raise AzureCliError(f"{' '.join(command)} failed: {detail}") from e

        log_api_call(
            logger,
            service="azure_cli",
            endpoint=" ".join(args[:3]),
            method="CLI",
            duration_ms=(time.time() - start_time) * 1000
        )
        return result.stdout

    def _run_json(self, args: List[str]) -> Any:
        output = self._run(args)
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise AzureCliError(f"Invalid JSON from az: {e}") from e

    def ensure_available(self) -> None:
        """
        Raises:
            AzureCliError: If ``az --version`` cannot be run
        """
        self._run(["--version"])

    def list_active_pull_requests(self) -> List[Dict[str, Any]]:
        prs = self._run_json(["repos", "pr", "list", "--detect", "--status", "active", "--output", "json"])
        if not isinstance(prs, list):
            raise AzureCliError("Unexpected output from az repos pr list")
        logger.debug(f"Azure CLI returned {len(prs)} active pull requests")
        return prs

    def show_pull_request(self, pr_id: str) -> Dict[str, Any]:
        return self._run_json(["repos", "pr", "show", "--detect", "--id", str(pr_id), "--output", "json"])
