"""Review comment data models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class PostMode(str, Enum):
    """How a review is reconciled with an existing sticky comment."""

    NEW = "new"
    APPEND = "append"
    REPLACE = "replace"


class PostAction(str, Enum):
    """What actually happened on the pull request."""

    CREATED = "created"
    UPDATED = "updated"
    APPENDED = "appended"


class ExistingComment(BaseModel):
    """The first comment of the thread holding a previous review."""

    thread_id: str
    comment_id: str
    existing_content: str


class PostResult(BaseModel):
    """Result of posting a review to a pull request."""

    success: bool
    action: PostAction
    status_code: Optional[int] = None
    response_body: Optional[str] = None
    error: Optional[str] = None

    @property
    def description(self) -> str:
        """Human readable summary of the action."""
        return {
            PostAction.CREATED: "posted new comment",
            PostAction.UPDATED: "updated existing comment",
            PostAction.APPENDED: "appended to existing comment",
        }[self.action]
