"""
``claude-review`` command.

Diffs the current branch against a compare branch, has Claude Code review the
changes and optionally posts the review to the branch's Azure DevOps pull
request.
"""

import asyncio
from pathlib import Path
from typing import Optional, Tuple

import click

from claude_review import __version__
from claude_review.config import Settings
from claude_review.models.comment import PostMode
from claude_review.models.review import REVIEW_FILE_NAME, AgentUsage, ReviewOptions
from claude_review.services.comment_reconciler import CommentReconciler
from claude_review.services.git_inspector import GitError, GitInspector
from claude_review.services.pr_resolver import PRResolver
from claude_review.services.review_agent import ReviewAgent, ReviewAgentError, read_review_file
from claude_review.utils.console import (
    console,
    format_error,
    format_info,
    format_success,
    format_warning,
    print_review,
)
from claude_review.utils.diff import remove_lockfile_changes
from claude_review.utils.logging import get_logger, setup_logging


logger = get_logger(__name__)

DEFAULT_PROMPT_FILE = Path(__file__).resolve().parent.parent / "prompts" / "pr-review-prompt.md"


def select_mode(append: bool, new_comment: bool) -> PostMode:
    """--new-comment wins over --append; replacing is the default."""
    if new_comment:
        return PostMode.NEW
    if append:
        return PostMode.APPEND
    return PostMode.REPLACE


def display_usage(usage: AgentUsage) -> None:
    console.print("\n📊 Claude Usage Metrics:")
    console.print(f"   Duration: {usage.duration_ms:.0f}ms")
    console.print(f"   Total Cost: ${usage.total_cost_usd:.6f}")

    tokens = usage.usage
    if tokens.input_tokens:
        console.print(f"   Input Tokens: {tokens.input_tokens:,}")
    if tokens.cache_read_input_tokens:
        console.print(f"   Cache Read Tokens: {tokens.cache_read_input_tokens:,}")
    if tokens.output_tokens:
        console.print(f"   Output Tokens: {tokens.output_tokens:,}")


def collect_diff(git: GitInspector, compare_branch: str) -> str:
    """
    Validate the repository and return the sanitized diff.

    Raises:
        click.ClickException: If the directory is not a repository, the compare
            branch is missing or git fails
    """
    if not git.is_git_repository():
        raise click.ClickException("Not a git repository")

    if not git.branch_exists(compare_branch):
        raise click.ClickException(f"Branch '{compare_branch}' not found")

    try:
        with console.status("Getting changes..."):
            diff = remove_lockfile_changes(git.get_diff(compare_branch))
    except GitError as e:
        raise click.ClickException(str(e)) from e

    console.print(format_success("Changes retrieved"))
    return diff


async def produce_review(options: ReviewOptions, settings: Settings, diff: str) -> Tuple[Path, str]:
    """
    Run the agent, or reuse an earlier review file when asked to.

    Returns:
        Tuple of (review file path, review text)

    Raises:
        click.ClickException: If the agent fails or leaves no usable review
    """
    try:
        if options.use_existing_review and options.review_file.exists():
            console.print(format_info(f"Using existing {REVIEW_FILE_NAME} file..."))
            return options.review_file, read_review_file(options.review_file)

        agent = ReviewAgent(options.directory, settings.claude_path)
        console.print(f"Using Claude at: {agent.claude_path}")
        console.print(f"Prompt file: {options.prompt_file}")

        with console.status("Running Claude review..."):
            review_file, usage = await agent.run(options.prompt_file, diff, options.compare_branch)
        console.print(format_success("Claude review completed"))

        if usage is None:
            console.print(format_warning("Could not parse Claude metrics from output"))
        elif usage.is_complete:
            display_usage(usage)

        return review_file, read_review_file(review_file)
    except ReviewAgentError as e:
        raise click.ClickException(str(e)) from e


async def publish_review(review: str, options: ReviewOptions, settings: Settings, git: GitInspector) -> None:
    """Resolve the pull request, confirm if needed, and post the review."""
    console.print("Azure DevOps posting...")

    resolver = PRResolver(settings, git)
    with console.status("Detecting Azure DevOps pull request..."):
        config = await resolver.resolve(pr_id=options.pr_id, use_env_vars=options.use_env_vars)

    if config is None:
        console.print(format_warning(
            "No Azure DevOps PR detected. Use --azure-pr <id> or set AZURE_DEVOPS_PR_ID"
        ))
        return

    should_post = options.post
    if should_post is None:
        should_post = click.confirm(
            f"Post this review to Azure DevOps PR {config.org}/{config.project} - PR #{config.pr_id}?",
            default=True,
            err=True,
        )
    if not should_post:
        return

    with console.status("Posting to Azure DevOps..."):
        result = await CommentReconciler(config).post_review(review, options.mode)

    if result.success:
        console.print(format_success(f"Successfully {result.description} on Azure DevOps"))
        return

    console.print(format_error(f"Failed to post review: {result.error}"))
    if result.response_body:
        console.print("Response body:", markup=False)
        console.print(result.response_body, markup=False)


def cleanup_review_file(review_file: Path, remove: bool) -> None:
    if remove and review_file.exists():
        review_file.unlink()
        console.print(f"🗑️  Removed {REVIEW_FILE_NAME} file")
    else:
        console.print(f"📄 {REVIEW_FILE_NAME} saved for reference")


async def run_review(options: ReviewOptions, settings: Settings) -> None:
    """
    Execute one review run.

    Raises:
        click.ClickException: On any fatal condition (exit code 1)
    """
    console.print(format_success("Claude Code Review CLI"))
    console.print(f"Reviewing changes in: {options.directory}")
    console.print(f"Comparing against: {options.compare_branch}")

    if not options.directory.is_dir():
        raise click.ClickException(f"Directory not found: {options.directory}")

    git = GitInspector(options.directory)
    diff = collect_diff(git, options.compare_branch)

    if not diff.strip():
        console.print(format_success("No changes to review"))
        return

    review_file, review = await produce_review(options, settings, diff)

    console.print("\n✅ Review completed!\n")
    print_review(review)
    console.print(f"Review saved to: {review_file}")

    if options.post is not False:
        await publish_review(review, options, settings, git)

    cleanup_review_file(review_file, options.remove_review_file)


@click.command(name="claude-review", help="Review code changes using Claude Code")
@click.version_option(__version__, prog_name="claude-review")
@click.option("-d", "--directory", type=click.Path(file_okay=False, path_type=Path), default=".",
              help="Directory to review")
@click.option("-c", "--compare-branch", default="main", show_default=True,
              help="Branch to compare against")
@click.option("-p", "--prompt-file", type=click.Path(dir_okay=False, path_type=Path),
              default=DEFAULT_PROMPT_FILE, help="Custom prompt file")
@click.option("--post/--no-post", default=None,
              help="Post to Azure DevOps without asking, or skip posting entirely")
@click.option("--azure-pr", "pr_id", metavar="ID",
              help="Azure DevOps PR ID (will auto-detect if not provided)")
@click.option("--use-env-vars", is_flag=True,
              help="Use environment variables instead of auto-detection")
@click.option("--use-existing-review", is_flag=True,
              help=f"Use existing {REVIEW_FILE_NAME} file instead of running Claude again")
@click.option("--append", is_flag=True,
              help="Append to existing Claude review comment instead of replacing it")
@click.option("--new-comment", is_flag=True,
              help="Always create a new comment instead of updating existing one")
@click.option("--remove-review-file", is_flag=True,
              help=f"Remove the {REVIEW_FILE_NAME} file after processing")
@click.option("-v", "--verbose", is_flag=True, help="Emit debug logs to stderr")
def main(
    directory: Path,
    compare_branch: str,
    prompt_file: Path,
    post: Optional[bool],
    pr_id: Optional[str],
    use_env_vars: bool,
    use_existing_review: bool,
    append: bool,
    new_comment: bool,
    remove_review_file: bool,
    verbose: bool,
) -> None:
    settings = Settings()
    setup_logging("DEBUG" if verbose else settings.log_level)

    options = ReviewOptions(
        directory=directory.resolve(),
        compare_branch=compare_branch,
        prompt_file=prompt_file.resolve(),
        post=post,
        pr_id=pr_id,
        use_env_vars=use_env_vars,
        use_existing_review=use_existing_review,
        mode=select_mode(append, new_comment),
        remove_review_file=remove_review_file,
    )
    logger.debug(f"Options: {options.model_dump_json()}")

    asyncio.run(run_review(options, settings))


if __name__ == "__main__":
    main()
