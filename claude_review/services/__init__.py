"""Business logic services package."""

from claude_review.services.git_inspector import GitInspector, GitError
from claude_review.services.review_agent import (
    ReviewAgent,
    ReviewAgentError,
    build_prompt,
    read_review_file,
)
from claude_review.services.ado_client import AzureDevOpsClient, AzureDevOpsError
from claude_review.services.azure_cli import AzureCli, AzureCliError
from claude_review.services.pr_resolver import PRResolver
from claude_review.services.comment_reconciler import CommentReconciler, REVIEW_HEADING
from claude_review.services.workitem_linker import is_work_item_linked, update_work_item

__all__ = [
    'GitInspector',
    'GitError',
    'ReviewAgent',
    'ReviewAgentError',
    'build_prompt',
    'read_review_file',
    'AzureDevOpsClient',
    'AzureDevOpsError',
    'AzureCli',
    'AzureCliError',
    'PRResolver',
    'CommentReconciler',
    'REVIEW_HEADING',
    'is_work_item_linked',
    'update_work_item',
]
