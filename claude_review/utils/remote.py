"""
Azure DevOps remote URL parsing and work item id extraction.
"""

import re
from typing import Optional
from urllib.parse import unquote

from claude_review.models.remote import RemoteInfo


HTTPS_REMOTE_PATTERN = re.compile(r"https://dev\.azure\.com/([^/]+)/([^/]+)/_git/([^/]+)")
SSH_REMOTE_PATTERN = re.compile(r"[^@]+@vs-ssh\.visualstudio\.com:v3/([^/]+)/([^/]+)/([^/]+)")

# Legacy hostname carried in PR urls returned by the az CLI. Deliberately narrow:
# dev.azure.com style urls do not match.
LEGACY_ORG_URL_PATTERN = re.compile(r"https://([^.]+)\.visualstudio\.com")

WORK_ITEM_ID_PATTERN = re.compile(r"^(\d{4,})")


class RemoteParseError(ValueError):
    """Raised when a git remote is not an Azure DevOps remote."""
    pass


def parse_azure_devops_remote(remote_url: str) -> RemoteInfo:
    """
    Parse an Azure DevOps remote URL into organization, project and repository.

    Supports both HTTPS and SSH formats:
    - https://dev.azure.com/org/My%20Project/_git/repo
    - org@vs-ssh.visualstudio.com:v3/org/My%20Project/repo

    Args:
        remote_url: Remote URL as reported by git

    Returns:
        RemoteInfo with the project name percent-decoded

    Raises:
        RemoteParseError: If the URL matches neither format
    """
    for pattern in (HTTPS_REMOTE_PATTERN, SSH_REMOTE_PATTERN):
        match = pattern.search(remote_url)
        if match:
            return RemoteInfo(
                organization=match.group(1),
                project=unquote(match.group(2)),
                repository=match.group(3),
            )

    raise RemoteParseError(
        f"Unable to parse Azure DevOps remote URL: {remote_url}. "
        "Expected format: https://dev.azure.com/org/project/_git/repo "
        "or org@vs-ssh.visualstudio.com:v3/org/project/repo"
    )


def extract_work_item_id(text: Optional[str]) -> Optional[str]:
    """
    Extract a work item id from the start of a branch name or PR title.

    A leading run of at least four digits is required:
    "64805: Add feature" -> "64805", "1234-feature" -> "1234", "123: x" -> None.
    """
    if not text:
        return None
    match = WORK_ITEM_ID_PATTERN.match(text)
    return match.group(1) if match else None


def extract_organization_from_pr_url(pr_url: Optional[str]) -> Optional[str]:
    """Organization name from a ``https://<org>.visualstudio.com/...`` url."""
    if not pr_url:
        return None
    match = LEGACY_ORG_URL_PATTERN.search(pr_url)
    return match.group(1) if match else None


def get_org_url(organization: str) -> str:
    """Organization base URL for SDK connections."""
    return f"https://dev.azure.com/{organization}"
