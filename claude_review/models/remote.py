"""Git remote data models."""

from pydantic import BaseModel


class RemoteInfo(BaseModel):
    """Azure DevOps coordinates parsed from the git remote URL."""

    organization: str
    project: str
    repository: str

    class Config:
        frozen = True
