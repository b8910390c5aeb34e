"""Data models for the Claude review CLI."""

from .comment import ExistingComment, PostAction, PostMode, PostResult
from .pull_request import (
    AzureConfig,
    ProjectRef,
    PullRequestInfo,
    PullRequestStatus,
    RepositoryRef,
    WorkItemRef,
)
from .remote import RemoteInfo
from .review import REVIEW_FILE_NAME, AgentUsage, ReviewOptions, TokenUsage
from .work_item import LinkResult

__all__ = [
    # Remote models
    "RemoteInfo",
    # Pull request models
    "AzureConfig",
    "PullRequestInfo",
    "PullRequestStatus",
    "RepositoryRef",
    "ProjectRef",
    "WorkItemRef",
    # Comment models
    "ExistingComment",
    "PostAction",
    "PostMode",
    "PostResult",
    # Review models
    "REVIEW_FILE_NAME",
    "ReviewOptions",
    "AgentUsage",
    "TokenUsage",
    # Work item models
    "LinkResult",
]
