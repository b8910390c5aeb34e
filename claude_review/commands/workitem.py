"""
``az-update-workitem`` command.

Links the work item named in the current branch (or in its pull request's
title) to that pull request, offering to create the pull request first.
"""

import asyncio
from typing import Optional

import click

from claude_review import __version__
from claude_review.config import Settings
from claude_review.models.pull_request import PullRequestInfo
from claude_review.models.remote import RemoteInfo
from claude_review.models.work_item import LinkResult
from claude_review.services.ado_client import AzureDevOpsClient, AzureDevOpsError
from claude_review.services.git_inspector import GitError, GitInspector
from claude_review.services.workitem_linker import update_work_item
from claude_review.utils.console import (
    console,
    format_dry_run,
    format_error,
    format_header,
    format_info,
    format_key_value,
    format_success,
    format_warning,
)
from claude_review.utils.logging import setup_logging
from claude_review.utils.remote import (
    RemoteParseError,
    extract_work_item_id,
    parse_azure_devops_remote,
)


def report(result: LinkResult) -> None:
    console.print()
    if result.success:
        console.print(format_success(result.message))
    else:
        console.print(format_error(result.message))


def show_pull_request(pr: PullRequestInfo) -> None:
    console.print(format_key_value("PR ID", str(pr.id)))
    console.print(format_key_value("PR Title", pr.title))
    console.print(format_key_value("PR Status", pr.status.value))


async def check_work_item(client: AzureDevOpsClient, work_item_id: str) -> bool:
    with console.status(f"Checking if work item {work_item_id} exists..."):
        exists = await client.work_item_exists(work_item_id)
    if exists:
        console.print(format_success(f"Work item {work_item_id} exists"))
    else:
        console.print(format_warning(f"Work item {work_item_id} does not exist"))
    return exists


async def link_from_title(
    client: AzureDevOpsClient,
    remote: RemoteInfo,
    branch: str,
    pr: PullRequestInfo,
    dry_run: bool
) -> bool:
    """
    Fall back to a work item id at the start of the PR title.

    Returns:
        True when a link was attempted and reported
    """
    title_work_item_id = extract_work_item_id(pr.title)
    if not title_work_item_id:
        return False

    console.print(format_info(f"Work item ID detected from PR title: {title_work_item_id}"))
    if not await check_work_item(client, title_work_item_id):
        return False

    report(await update_work_item(client, remote, branch, title_work_item_id, dry_run))
    return True


async def run_update(settings: Settings, dry_run: bool) -> None:
    """
    Execute the linking flow.

    Raises:
        click.ClickException: On any fatal condition (exit code 1)
    """
    console.print(format_header("Azure DevOps Work Item Linker"))
    console.print()

    git = GitInspector()
    with console.status("Checking git repository..."):
        is_repository = git.is_git_repository()
    if not is_repository:
        raise click.ClickException("This command must be run from within a git repository")
    console.print(format_success("Git repository detected"))

    token = settings.azure_devops_token
    if not token:
        raise click.ClickException(
            "AZURE_DEVOPS_TOKEN environment variable is required. "
            "Please set it with your Azure DevOps Personal Access Token."
        )

    try:
        branch = git.get_current_branch()
        console.print(format_success(f"Current branch: {branch}"))

        work_item_id = extract_work_item_id(branch)
        if work_item_id:
            console.print(format_info(f"Work item ID detected: {work_item_id}"))
        else:
            console.print(format_warning("No work item ID detected from branch name"))

        remote = parse_azure_devops_remote(git.get_remote_url())
    except (GitError, RemoteParseError) as e:
        raise click.ClickException(str(e)) from e
    console.print(format_success("Azure DevOps remote parsed"))

    console.print()
    console.print(format_key_value("Organization", remote.organization))
    console.print(format_key_value("Project", remote.project))
    console.print(format_key_value("Repository", remote.repository))
    console.print()

    try:
        client = AzureDevOpsClient(remote.organization, token)
    except AzureDevOpsError as e:
        raise click.ClickException(str(e)) from e

    if work_item_id:
        await check_work_item(client, work_item_id)

    try:
        with console.status("Looking for existing pull request..."):
            pr: Optional[PullRequestInfo] = await client.find_pull_request(remote, branch)
    except AzureDevOpsError as e:
        raise click.ClickException(str(e)) from e

    if pr is not None:
        console.print(format_success(f"Found PR #{pr.id}: {pr.title}"))
        show_pull_request(pr)

        if not work_item_id and await link_from_title(client, remote, branch, pr, dry_run):
            return
    else:
        console.print(format_error("No active pull request found"))

        if not click.confirm("Would you like to create a pull request?", default=True, err=True):
            console.print(format_info("No pull request will be created"))
            return

        if dry_run:
            console.print(format_dry_run(f"Would create pull request for branch {branch}"))
            return

        try:
            with console.status("Creating pull request..."):
                pr = await client.create_pull_request(remote, branch, work_item_id)
        except AzureDevOpsError as e:
            console.print(format_error("Failed to create pull request"))
            raise click.ClickException(str(e)) from e

        console.print(format_success(f"Created PR #{pr.id}: {pr.title}"))
        show_pull_request(pr)

    if work_item_id:
        report(await update_work_item(client, remote, branch, work_item_id, dry_run))
    else:
        console.print()
        console.print(format_warning("No work item ID available for linking"))
        console.print(format_info("Pull request found but no work item will be linked"))


@click.command(name="az-update-workitem", help="Link Azure DevOps work items to pull requests")
@click.version_option(__version__, prog_name="az-update-workitem")
@click.option("--dry-run", is_flag=True, help="Show what would be done without making changes")
@click.option("-v", "--verbose", is_flag=True, help="Emit debug logs to stderr")
def main(dry_run: bool, verbose: bool) -> None:
    settings = Settings()
    setup_logging("DEBUG" if verbose else settings.log_level)
    asyncio.run(run_update(settings, dry_run))


if __name__ == "__main__":
    main()
