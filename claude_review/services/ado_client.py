"""
Azure DevOps client component.

Wraps the Azure DevOps Python SDK for the calls this tool needs: finding the
pull request for a branch, creating pull requests and linking work items.
SDK calls are synchronous and run in a worker thread.
"""

import asyncio
import re
import time
from typing import Any, Callable, Optional

from azure.devops.connection import Connection
from azure.devops.v7_1.git.models import GitPullRequest, GitPullRequestSearchCriteria
from azure.devops.v7_1.work_item_tracking.models import JsonPatchOperation
from msrest.authentication import BasicAuthentication

from claude_review.models.pull_request import BRANCH_REF_PREFIX, PullRequestInfo, PullRequestStatus
from claude_review.models.remote import RemoteInfo
from claude_review.utils.logging import get_logger, log_api_call
from claude_review.utils.remote import get_org_url


logger = get_logger(__name__)


class AzureDevOpsError(Exception):
    """Raised when an Azure DevOps SDK call fails."""
    pass


def pull_request_artifact_url(pr: PullRequestInfo) -> str:
    """Artifact link URL used to relate a work item to a pull request."""
    return (
        f"vstfs:///Git/PullRequestId/"
        f"{pr.repository.project.id}%2f{pr.repository.id}%2f{pr.id}"
    )


class AzureDevOpsClient:
    """Pull request and work item operations for one organization."""

    def __init__(self, organization: str, personal_access_token: str):
        """
        Initialize the client with an Azure DevOps connection.

        Args:
            organization: Organization name
            personal_access_token: PAT for authentication

        Raises:
            AzureDevOpsError: If the SDK clients cannot be created (the SDK
                resolves resource areas over the network here)
        """
        self.organization = organization
        self.organization_url = get_org_url(organization)

        credentials = BasicAuthentication('', personal_access_token)
        try:
            self._connection = Connection(base_url=self.organization_url, creds=credentials)
            self._git_client = self._connection.clients.get_git_client()
            self._wit_client = self._connection.clients.get_work_item_tracking_client()
        except Exception as e:
            logger.error(
                f"Failed to connect to Azure DevOps: {e}",
                extra={"organization": organization}
            )
            raise AzureDevOpsError(f"Failed to connect to {self.organization_url}: {e}") from e

        logger.debug(f"AzureDevOpsClient initialized for organization: {self.organization_url}")

    async def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run a synchronous SDK call in a thread and log it.

        Raises:
            AzureDevOpsError: Wrapping any SDK or transport failure
        """
        endpoint = getattr(func, "__name__", "sdk_call")
        start_time = time.time()

        try:
            result = await asyncio.to_thread(func, *args, **kwargs)
        except Exception as e:
            log_api_call(
                logger,
                service="azure_devops",
                endpoint=endpoint,
                method="SDK",
                duration_ms=(time.time() - start_time) * 1000,
                error=str(e)
            )
            raise AzureDevOpsError(f"{endpoint} failed: {e}") from e

        log_api_call(
            logger,
            service="azure_devops",
            endpoint=endpoint,
            method="SDK",
            duration_ms=(time.time() - start_time) * 1000
        )
        return result

    async def find_pull_request(self, remote: RemoteInfo, branch: str) -> Optional[PullRequestInfo]:
        """
        Find the pull request whose source branch is ``branch``.

        Active pull requests are searched first; when there are none the search
        is repeated across all statuses. The first result in API order wins.

        Args:
            remote: Organization, project and repository
            branch: Source branch name without ``refs/heads/``

        Returns:
            PullRequestInfo, or None when the branch has no pull request

        Raises:
            AzureDevOpsError: If the search itself fails
        """
        source_ref_name = f"{BRANCH_REF_PREFIX}{branch}"
        logger.info(
            f"Searching for PR with source {source_ref_name}",
            extra={"repository": remote.repository, "project": remote.project}
        )

        pull_requests = await self._call(
            self._git_client.get_pull_requests,
            remote.repository,
            GitPullRequestSearchCriteria(
                source_ref_name=source_ref_name,
                status=PullRequestStatus.ACTIVE.value
            ),
            project=remote.project
        )
        logger.info(f"Found {len(pull_requests or [])} active pull requests")

        if not pull_requests:
            logger.info("No active PRs found, searching all statuses...")
            pull_requests = await self._call(
                self._git_client.get_pull_requests,
                remote.repository,
                GitPullRequestSearchCriteria(source_ref_name=source_ref_name, status="all"),
                project=remote.project
            )
            for index, pr in enumerate(pull_requests or [], start=1):
                logger.info(f"PR {index}: ID={pr.pull_request_id}, Status={pr.status}, Title=\"{pr.title}\"")

        if not pull_requests:
            logger.info(f"No pull requests found for branch: {branch}")
            return None

        pr = PullRequestInfo.from_sdk(pull_requests[0])
        logger.info(
            f"Using PR {pr.id}: {pr.title}",
            extra={"pr_id": str(pr.id), "status": pr.status.value}
        )
        return pr

    async def get_pull_request(self, remote: RemoteInfo, pr_id: int) -> PullRequestInfo:
        """Fetch one pull request by id, including its linked work items."""
        pr = await self._call(
            self._git_client.get_pull_request,
            remote.repository,
            int(pr_id),
            project=remote.project,
            include_work_item_refs=True
        )
        return PullRequestInfo.from_sdk(pr)

    async def create_pull_request(
        self,
        remote: RemoteInfo,
        branch: str,
        work_item_id: Optional[str] = None
    ) -> PullRequestInfo:
        """
        Open a pull request from ``branch`` into the repository default branch.

        Args:
            remote: Organization, project and repository
            branch: Source branch name
            work_item_id: Work item id used in the title and description

        Returns:
            The created pull request
        """
        repository = await self._call(
            self._git_client.get_repository,
            remote.repository,
            project=remote.project
        )
        default_branch = getattr(repository, "default_branch", None) or f"{BRANCH_REF_PREFIX}main"

        if work_item_id:
            title = f"{work_item_id}: {re.sub(r'^[0-9]+/', '', branch)}"
            description = f"Automated PR creation for work item {work_item_id}"
        else:
            title = branch
            description = "Automated PR creation"

        pull_request = GitPullRequest(
            source_ref_name=f"{BRANCH_REF_PREFIX}{branch}",
            target_ref_name=default_branch,
            title=title,
            description=description,
        )

        created = await self._call(
            self._git_client.create_pull_request,
            pull_request,
            remote.repository,
            project=remote.project
        )
        logger.info(f"Created PR {created.pull_request_id}: {title}", extra={"pr_id": str(created.pull_request_id)})
        return PullRequestInfo.from_sdk(created)

    async def work_item_exists(self, work_item_id: str) -> bool:
        """Check whether a work item exists; any failure counts as missing."""
        try:
            await self._call(self._wit_client.get_work_item, int(work_item_id))
            return True
        except (AzureDevOpsError, ValueError):
            return False

    async def link_work_item(self, work_item_id: str, pr: PullRequestInfo) -> None:
        """
        Add an artifact link from a work item to a pull request.

        Args:
            work_item_id: Work item to update
            pr: Pull request to link
        """
        document = [
            JsonPatchOperation(
                op="add",
                path="/relations/-",
                value={
                    "attributes": {"name": "Pull Request"},
                    "rel": "ArtifactLink",
                    "url": pull_request_artifact_url(pr),
                },
            )
        ]

        await self._call(self._wit_client.update_work_item, document, int(work_item_id))
        logger.info(f"Linked work item {work_item_id} to PR {pr.id}", extra={"pr_id": str(pr.id)})
