"""
Work item linking.

Links an Azure DevOps work item to the pull request of a branch, skipping the
update when the link already exists.
"""

from claude_review.models.pull_request import PullRequestInfo
from claude_review.models.remote import RemoteInfo
from claude_review.models.work_item import LinkResult
from claude_review.services.ado_client import AzureDevOpsClient, AzureDevOpsError
from claude_review.utils.logging import get_logger, log_error_with_context


logger = get_logger(__name__)


def is_work_item_linked(pr: PullRequestInfo, work_item_id: str) -> bool:
    return any(ref.id == work_item_id for ref in pr.work_item_refs)


async def update_work_item(
    client: AzureDevOpsClient,
    remote: RemoteInfo,
    branch: str,
    work_item_id: str,
    dry_run: bool = False
) -> LinkResult:
    """
    Link ``work_item_id`` to the pull request for ``branch``.

    Args:
        client: SDK client for the organization
        remote: Organization, project and repository
        branch: Source branch of the pull request
        work_item_id: Work item to link
        dry_run: Report what would happen without updating anything

    Returns:
        LinkResult describing the outcome
    """
    try:
        if not await client.work_item_exists(work_item_id):
            return LinkResult(
                success=False,
                message=f"Work item {work_item_id} does not exist",
                work_item_exists=False,
            )

        pr = await client.find_pull_request(remote, branch)
        if pr is None:
            return LinkResult(
                success=False,
                message=f"No active pull request found for branch {branch}",
                work_item_exists=True,
            )

        if is_work_item_linked(pr, work_item_id):
            return LinkResult(
                success=True,
                message=f"Work item {work_item_id} is already linked to PR {pr.id}",
                pr=pr,
                work_item_exists=True,
            )

        if dry_run:
            message = f"[DRY RUN] Would link work item {work_item_id} to PR {pr.id}"
        else:
            await client.link_work_item(work_item_id, pr)
            message = f"Successfully linked work item {work_item_id} to PR {pr.id}"

        return LinkResult(success=True, message=message, pr=pr, work_item_exists=True)

    except AzureDevOpsError as e:
        log_error_with_context(logger, "Failed to update work item", e, work_item_id=work_item_id)
        return LinkResult(success=False, message=f"Failed to update work item: {e}")
