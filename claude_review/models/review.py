"""Review run data models."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from claude_review.models.comment import PostMode

REVIEW_FILE_NAME = "claude-review.md"


class ReviewOptions(BaseModel):
    """Command-line options for a single review run."""

    directory: Path
    compare_branch: str = "main"
    prompt_file: Path
    post: Optional[bool] = None  # None means ask
    pr_id: Optional[str] = None
    use_env_vars: bool = False
    use_existing_review: bool = False
    mode: PostMode = PostMode.REPLACE
    remove_review_file: bool = False

    class Config:
        frozen = True

    @property
    def review_file(self) -> Path:
        return self.directory / REVIEW_FILE_NAME


class TokenUsage(BaseModel):
    """Token counts reported by the review agent."""

    input_tokens: Optional[int] = None
    cache_read_input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


class AgentUsage(BaseModel):
    """Usage telemetry from the review agent's JSON output."""

    duration_ms: Optional[float] = None
    total_cost_usd: Optional[float] = None
    usage: Optional[TokenUsage] = None

    @property
    def is_complete(self) -> bool:
        """Whether enough telemetry is present to be worth displaying."""
        return bool(self.duration_ms) and self.total_cost_usd is not None and self.usage is not None
