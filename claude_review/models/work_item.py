"""Work item linking data models."""

from typing import Optional

from pydantic import BaseModel

from claude_review.models.pull_request import PullRequestInfo


class LinkResult(BaseModel):
    """Result of linking a work item to a pull request."""

    success: bool
    message: str
    pr: Optional[PullRequestInfo] = None
    work_item_exists: Optional[bool] = None
