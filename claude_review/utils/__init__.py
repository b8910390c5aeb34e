"""
Utility modules for the Claude review CLI.
"""

from claude_review.utils.logging import (
    get_logger,
    setup_logging,
    log_strategy_attempt,
    log_api_call,
    log_error_with_context,
)
from claude_review.utils.remote import (
    RemoteParseError,
    parse_azure_devops_remote,
    extract_work_item_id,
    extract_organization_from_pr_url,
    get_org_url,
)
from claude_review.utils.diff import LOCK_FILES, remove_lockfile_changes

__all__ = [
    "get_logger",
    "setup_logging",
    "log_strategy_attempt",
    "log_api_call",
    "log_error_with_context",
    "RemoteParseError",
    "parse_azure_devops_remote",
    "extract_work_item_id",
    "extract_organization_from_pr_url",
    "get_org_url",
    "LOCK_FILES",
    "remove_lockfile_changes",
]
