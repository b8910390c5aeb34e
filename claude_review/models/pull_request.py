"""Pull request data models."""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


BRANCH_REF_PREFIX = "refs/heads/"


def branch_from_ref(ref_name: Optional[str]) -> str:
    """Strip the ``refs/heads/`` prefix from a git ref name."""
    ref_name = ref_name or ""
    if ref_name.startswith(BRANCH_REF_PREFIX):
        return ref_name[len(BRANCH_REF_PREFIX):]
    return ref_name


class PullRequestStatus(str, Enum):
    """Pull request status as reported by Azure DevOps."""

    NOT_SET = "notSet"
    ACTIVE = "active"
    ABANDONED = "abandoned"
    COMPLETED = "completed"

    @classmethod
    def from_value(cls, value: Any) -> "PullRequestStatus":
        """Map an SDK/CLI status value onto the enum, defaulting to NOT_SET."""
        if isinstance(value, cls):
            return value
        text = str(value or "").lower()
        for status in cls:
            if status.value.lower() == text:
                return status
        return cls.NOT_SET


class WorkItemRef(BaseModel):
    """Reference to a work item linked to a pull request."""

    id: str
    url: str = ""


class ProjectRef(BaseModel):
    """Project reference on a repository."""

    id: Optional[str] = None


class RepositoryRef(BaseModel):
    """Repository reference on a pull request."""

    id: Optional[str] = None
    project: ProjectRef = ProjectRef()


class PullRequestInfo(BaseModel):
    """Pull request details read from Azure DevOps."""

    id: int
    title: str = ""
    status: PullRequestStatus = PullRequestStatus.NOT_SET
    source_ref_name: str = ""
    work_item_refs: List[WorkItemRef] = []
    repository: RepositoryRef = RepositoryRef()

    @classmethod
    def from_sdk(cls, pr: Any) -> "PullRequestInfo":
        """
        Build from an azure-devops ``GitPullRequest``.
        
        Args:
            pr: SDK pull request object
            
        Returns:
            PullRequestInfo with the fields this tool relies on
        """
        repository = getattr(pr, "repository", None)
        project = getattr(repository, "project", None) if repository is not None else None
        refs = getattr(pr, "work_item_refs", None) or []
        
        return cls(
            id=pr.pull_request_id,
            title=pr.title or "",
            status=PullRequestStatus.from_value(pr.status),
            source_ref_name=pr.source_ref_name or "",
            work_item_refs=[
                WorkItemRef(id=str(ref.id), url=ref.url or "") for ref in refs
            ],
            repository=RepositoryRef(
                id=getattr(repository, "id", None),
                project=ProjectRef(id=getattr(project, "id", None)),
            ),
        )

    @property
    def source_branch(self) -> str:
        """Source branch name without the ``refs/heads/`` prefix."""
        return branch_from_ref(self.source_ref_name)


class AzureConfig(BaseModel):
    """Everything needed to address a pull request over the REST API."""

    token: str = Field(repr=False)
    org: str
    project: str
    repo: str
    pr_id: str

    class Config:
        frozen = True

    @property
    def threads_url(self) -> str:
        """Comment threads collection URL for this pull request."""
        return (
            f"https://dev.azure.com/{self.org}/{self.project}/_apis/git/"
            f"repositories/{self.repo}/pullRequests/{self.pr_id}/threads"
        )
