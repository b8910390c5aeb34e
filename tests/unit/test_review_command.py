"""Unit tests for the claude-review command."""

import pytest
from click.testing import CliRunner
from unittest.mock import AsyncMock, patch

from claude_review.commands.review import main, select_mode
from claude_review.models.comment import PostAction, PostMode, PostResult
from claude_review.models.pull_request import AzureConfig
from claude_review.models.review import AgentUsage
from claude_review.services.git_inspector import GitError
from claude_review.services.review_agent import ReviewAgentError


DIFF = "diff --git a/app.py b/app.py\n+print('hello')\n"


@pytest.fixture
def env(monkeypatch):
    for name in ("AZURE_DEVOPS_TOKEN", "AZURE_DEVOPS_ORG", "AZURE_DEVOPS_PROJECT",
                 "AZURE_DEVOPS_REPO", "AZURE_DEVOPS_PR_ID", "CLAUDE_PATH", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    prompt = tmp_path / "prompt.md"
    prompt.write_text("Review this", encoding="utf-8")
    return tmp_path


@pytest.fixture
def git():
    with patch('claude_review.commands.review.GitInspector') as mock_cls:
        inspector = mock_cls.return_value
        inspector.is_git_repository.return_value = True
        inspector.branch_exists.return_value = True
        inspector.get_diff.return_value = DIFF
        yield inspector


@pytest.fixture
def agent(workdir):
    with patch('claude_review.commands.review.ReviewAgent') as mock_cls:
        instance = mock_cls.return_value
        instance.claude_path = "/usr/local/bin/claude"

        async def run(prompt_file, git_diff, compare_branch):
            review_file = workdir / "claude-review.md"
            review_file.write_text("Looks good overall.", encoding="utf-8")
            return review_file, AgentUsage(duration_ms=1200, total_cost_usd=0.01, usage={"input_tokens": 10})

        instance.run = AsyncMock(side_effect=run)
        yield instance


@pytest.fixture
def resolver():
    with patch('claude_review.commands.review.PRResolver') as mock_cls:
        instance = mock_cls.return_value
        instance.resolve = AsyncMock(return_value=AzureConfig(
            token="pat", org="org", project="proj", repo="repo", pr_id="42"
        ))
        yield instance


@pytest.fixture
def reconciler():
    with patch('claude_review.commands.review.CommentReconciler') as mock_cls:
        mock_cls.return_value.post_review = AsyncMock(
            return_value=PostResult(success=True, action=PostAction.UPDATED, status_code=200)
        )
        yield mock_cls


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch('claude_review.commands.review.setup_logging'):
        yield


def invoke(workdir, *args):
    return CliRunner().invoke(main, ["-d", str(workdir), "-p", str(workdir / "prompt.md"), *args])


def test_select_mode():
    assert select_mode(append=False, new_comment=False) == PostMode.REPLACE
    assert select_mode(append=True, new_comment=False) == PostMode.APPEND
    assert select_mode(append=True, new_comment=True) == PostMode.NEW


class TestReviewCommand:
    """Test suite for the claude-review command."""

    def test_no_changes_exits_cleanly(self, env, workdir, git, agent, resolver, reconciler):
        git.get_diff.return_value = ""

        result = invoke(workdir)

        assert result.exit_code == 0
        assert "No changes to review" in result.output
        agent.run.assert_not_called()
        resolver.resolve.assert_not_called()
        reconciler.assert_not_called()

    def test_lockfile_only_changes_count_as_no_changes(self, env, workdir, git, agent, resolver, reconciler):
        git.get_diff.return_value = "diff --git a/poetry.lock b/poetry.lock\n+hash\n"

        result = invoke(workdir)

        assert result.exit_code == 0
        agent.run.assert_not_called()

    def test_not_a_repository(self, env, workdir, git, agent):
        git.is_git_repository.return_value = False

        result = invoke(workdir)

        assert result.exit_code == 1
        assert "Not a git repository" in result.output
        agent.run.assert_not_called()

    def test_missing_compare_branch(self, env, workdir, git, agent):
        git.branch_exists.return_value = False

        result = invoke(workdir, "-c", "develop")

        assert result.exit_code == 1
        assert "Branch 'develop' not found" in result.output
        git.branch_exists.assert_called_once_with("develop")

    def test_diff_failure(self, env, workdir, git, agent):
        git.get_diff.side_effect = GitError("Failed to get git diff: bad revision")

        result = invoke(workdir)

        assert result.exit_code == 1
        assert "Failed to get git diff" in result.output

    def test_agent_failure(self, env, workdir, git, agent, resolver):
        agent.run.side_effect = ReviewAgentError("Claude execution failed: boom")

        result = invoke(workdir, "--post")

        assert result.exit_code == 1
        assert "Claude execution failed" in result.output
        resolver.resolve.assert_not_called()

    def test_no_post_skips_azure_devops(self, env, workdir, git, agent, resolver, reconciler):
        result = invoke(workdir, "--no-post")

        assert result.exit_code == 0
        assert "Looks good overall." in result.output
        agent.run.assert_awaited_once()
        _, diff, compare_branch = agent.run.call_args[0]
        assert diff == DIFF
        assert compare_branch == "main"
        resolver.resolve.assert_not_called()
        reconciler.assert_not_called()
        assert (workdir / "claude-review.md").exists()

    def test_post_publishes_review(self, env, workdir, git, agent, resolver, reconciler):
        result = invoke(workdir, "--post", "--azure-pr", "42", "--append")

        assert result.exit_code == 0
        resolver.resolve.assert_awaited_once_with(pr_id="42", use_env_vars=False)
        config = reconciler.call_args[0][0]
        assert config.pr_id == "42"
        reconciler.return_value.post_review.assert_awaited_once_with("Looks good overall.", PostMode.APPEND)
        assert "updated existing comment" in result.output

    def test_confirmation_declined(self, env, workdir, git, agent, resolver, reconciler):
        result = CliRunner().invoke(
            main, ["-d", str(workdir), "-p", str(workdir / "prompt.md")], input="n\n"
        )

        assert result.exit_code == 0
        resolver.resolve.assert_awaited_once()
        reconciler.assert_not_called()

    def test_confirmation_accepted(self, env, workdir, git, agent, resolver, reconciler):
        result = CliRunner().invoke(
            main, ["-d", str(workdir), "-p", str(workdir / "prompt.md")], input="y\n"
        )

        assert result.exit_code == 0
        reconciler.return_value.post_review.assert_awaited_once_with("Looks good overall.", PostMode.REPLACE)

    def test_unresolved_pr_is_not_fatal(self, env, workdir, git, agent, resolver, reconciler):
        resolver.resolve.return_value = None

        result = invoke(workdir, "--post")

        assert result.exit_code == 0
        assert "No Azure DevOps PR detected" in result.output
        reconciler.assert_not_called()

    def test_failed_post_is_not_fatal(self, env, workdir, git, agent, resolver, reconciler):
        reconciler.return_value.post_review.return_value = PostResult(
            success=False,
            action=PostAction.CREATED,
            status_code=401,
            response_body='{"message": "denied"}',
            error="401 Unauthorized",
        )

        result = invoke(workdir, "--post")

        assert result.exit_code == 0
        assert "401 Unauthorized" in result.output
        assert "denied" in result.output

    def test_remove_review_file(self, env, workdir, git, agent):
        result = invoke(workdir, "--no-post", "--remove-review-file")

        assert result.exit_code == 0
        assert not (workdir / "claude-review.md").exists()

    def test_use_existing_review(self, env, workdir, git, agent):
        (workdir / "claude-review.md").write_text("Earlier review", encoding="utf-8")

        result = invoke(workdir, "--no-post", "--use-existing-review")

        assert result.exit_code == 0
        assert "Earlier review" in result.output
        agent.run.assert_not_called()

    def test_use_env_vars_forwarded(self, env, workdir, git, agent, resolver, reconciler):
        result = invoke(workdir, "--post", "--use-env-vars")

        assert result.exit_code == 0
        resolver.resolve.assert_awaited_once_with(pr_id=None, use_env_vars=True)

    def test_missing_directory(self, env, workdir):
        result = CliRunner().invoke(main, ["-d", str(workdir / "missing")])

        assert result.exit_code == 1
        assert "Directory not found" in result.output
