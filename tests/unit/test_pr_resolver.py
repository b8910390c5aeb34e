"""Unit tests for PRResolver component."""

import pytest
from unittest.mock import AsyncMock, Mock

from claude_review.config import Settings
from claude_review.models.pull_request import AzureConfig, PullRequestInfo
from claude_review.services.azure_cli import AzureCliError
from claude_review.services.pr_resolver import PRResolver


HTTPS_REMOTE = "https://dev.azure.com/convergentis/CIS%20Planning/_git/repo"


def make_settings(**overrides) -> Settings:
    values = {
        "azure_devops_token": None,
        "azure_devops_org": None,
        "azure_devops_project": None,
        "azure_devops_repo": None,
        "azure_devops_pr_id": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def cli_pr(pr_id=321, branch="feature/test", url=None):
    return {
        "pullRequestId": pr_id,
        "sourceRefName": f"refs/heads/{branch}",
        "url": url or f"https://convergentis.visualstudio.com/pid/_apis/git/repositories/rid/pullRequests/{pr_id}",
        "repository": {"name": "repo", "project": {"name": "CIS Planning"}},
    }


@pytest.fixture
def git():
    inspector = Mock()
    inspector.cwd = None
    inspector.is_git_repository.return_value = True
    inspector.get_current_branch.return_value = "feature/test"
    inspector.get_remote_url.return_value = HTTPS_REMOTE
    return inspector


@pytest.fixture
def azure_cli():
    cli = Mock()
    cli.list_active_pull_requests.return_value = []
    return cli


@pytest.fixture
def ado_client():
    client = Mock()
    client.find_pull_request = AsyncMock(return_value=PullRequestInfo(id=123, title="Test PR"))
    return client


@pytest.fixture
def client_factory(ado_client):
    return Mock(return_value=ado_client)


def make_resolver(settings, git, azure_cli, client_factory):
    return PRResolver(settings, git, azure_cli=azure_cli, client_factory=client_factory)


class TestGitAndApiStrategy:
    """Test suite for the git remote + API strategy."""

    @pytest.mark.asyncio
    async def test_finds_pr_for_current_branch(self, git, azure_cli, client_factory, ado_client):
        resolver = make_resolver(make_settings(azure_devops_token="pat"), git, azure_cli, client_factory)

        config = await resolver.resolve()

        assert config == AzureConfig(
            token="pat", org="convergentis", project="CIS Planning", repo="repo", pr_id="123"
        )
        client_factory.assert_called_once_with("convergentis", "pat")
        remote, branch = ado_client.find_pull_request.call_args[0]
        assert remote.project == "CIS Planning"
        assert branch == "feature/test"
        azure_cli.ensure_available.assert_not_called()

    @pytest.mark.asyncio
    async def test_explicit_pr_id_skips_search(self, git, azure_cli, client_factory, ado_client):
        resolver = make_resolver(make_settings(azure_devops_token="pat"), git, azure_cli, client_factory)

        config = await resolver.resolve(pr_id="987")

        assert config.pr_id == "987"
        assert config.org == "convergentis"
        client_factory.assert_not_called()
        ado_client.find_pull_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_token_yields_no_result(self, git, azure_cli, client_factory):
        resolver = make_resolver(make_settings(), git, azure_cli, client_factory)

        assert await resolver.from_git_and_api() is None
        client_factory.assert_not_called()
        git.get_remote_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_not_a_repository_yields_no_result(self, git, azure_cli, client_factory):
        git.is_git_repository.return_value = False
        resolver = make_resolver(make_settings(azure_devops_token="pat"), git, azure_cli, client_factory)

        assert await resolver.from_git_and_api() is None
        git.get_current_branch.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_pr_found(self, git, azure_cli, client_factory, ado_client):
        ado_client.find_pull_request.return_value = None
        resolver = make_resolver(make_settings(azure_devops_token="pat"), git, azure_cli, client_factory)

        assert await resolver.from_git_and_api() is None


class TestAzureCliStrategy:
    """Test suite for the az CLI strategy."""

    @pytest.mark.asyncio
    async def test_matches_current_branch(self, git, azure_cli, client_factory):
        azure_cli.list_active_pull_requests.return_value = [
            cli_pr(1, branch="other"),
            cli_pr(2, branch="feature/test"),
            cli_pr(3, branch="feature/test"),
        ]
        resolver = make_resolver(make_settings(azure_devops_token="pat"), git, azure_cli, client_factory)

        config = await resolver.from_azure_cli()

        assert config == AzureConfig(
            token="pat", org="convergentis", project="CIS Planning", repo="repo", pr_id="2"
        )

    @pytest.mark.asyncio
    async def test_no_matching_branch(self, git, azure_cli, client_factory):
        azure_cli.list_active_pull_requests.return_value = [cli_pr(1, branch="other")]
        resolver = make_resolver(make_settings(azure_devops_token="pat"), git, azure_cli, client_factory)

        assert await resolver.from_azure_cli() is None
        azure_cli.show_pull_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_explicit_pr_id_is_fetched_directly(self, git, azure_cli, client_factory):
        azure_cli.show_pull_request.return_value = cli_pr(44, branch="unrelated")
        resolver = make_resolver(make_settings(azure_devops_token="pat"), git, azure_cli, client_factory)

        config = await resolver.from_azure_cli(pr_id="44")

        assert config.pr_id == "44"
        azure_cli.show_pull_request.assert_called_once_with("44")
        azure_cli.list_active_pull_requests.assert_not_called()

    @pytest.mark.asyncio
    async def test_modern_pr_url_is_not_supported(self, git, azure_cli, client_factory):
        azure_cli.list_active_pull_requests.return_value = [
            cli_pr(5, url="https://dev.azure.com/convergentis/pid/_apis/git/repositories/rid/pullRequests/5")
        ]
        resolver = make_resolver(make_settings(azure_devops_token="pat"), git, azure_cli, client_factory)

        assert await resolver.from_azure_cli() is None

    @pytest.mark.asyncio
    async def test_token_required(self, git, azure_cli, client_factory):
        azure_cli.list_active_pull_requests.return_value = [cli_pr(5)]
        resolver = make_resolver(make_settings(), git, azure_cli, client_factory)

        assert await resolver.from_azure_cli() is None

    @pytest.mark.asyncio
    async def test_cli_unavailable_raises(self, git, azure_cli, client_factory):
        azure_cli.ensure_available.side_effect = AzureCliError("Azure CLI (az) is not installed")
        resolver = make_resolver(make_settings(), git, azure_cli, client_factory)

        with pytest.raises(AzureCliError):
            await resolver.from_azure_cli()


class TestEnvVarStrategy:
    """Test suite for the environment variable strategy."""

    @pytest.mark.asyncio
    async def test_complete_environment(self, git, azure_cli, client_factory):
        settings = make_settings(
            azure_devops_token="pat",
            azure_devops_org="org",
            azure_devops_project="proj",
            azure_devops_repo="repo",
            azure_devops_pr_id="11",
        )
        resolver = make_resolver(settings, git, azure_cli, client_factory)

        config = await resolver.from_env_vars()

        assert config == AzureConfig(token="pat", org="org", project="proj", repo="repo", pr_id="11")

    @pytest.mark.asyncio
    async def test_explicit_pr_id_overrides_environment(self, git, azure_cli, client_factory):
        settings = make_settings(
            azure_devops_token="pat",
            azure_devops_org="org",
            azure_devops_project="proj",
            azure_devops_repo="repo",
        )
        resolver = make_resolver(settings, git, azure_cli, client_factory)

        assert (await resolver.from_env_vars(pr_id="12")).pr_id == "12"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", [
        "azure_devops_token", "azure_devops_org", "azure_devops_project", "azure_devops_repo", "azure_devops_pr_id",
    ])
    async def test_any_missing_value_yields_no_result(self, git, azure_cli, client_factory, missing):
        values = {
            "azure_devops_token": "pat",
            "azure_devops_org": "org",
            "azure_devops_project": "proj",
            "azure_devops_repo": "repo",
            "azure_devops_pr_id": "11",
        }
        values[missing] = None
        resolver = make_resolver(make_settings(**values), git, azure_cli, client_factory)

        assert await resolver.from_env_vars() is None


class TestResolutionChain:
    """Test suite for strategy ordering and fallback."""

    @pytest.mark.asyncio
    async def test_missing_token_falls_through_to_later_strategies(self, git, azure_cli, client_factory):
        azure_cli.list_active_pull_requests.return_value = []
        resolver = make_resolver(
            make_settings(
                azure_devops_org="org",
                azure_devops_project="proj",
                azure_devops_repo="repo",
                azure_devops_pr_id="11",
            ),
            git, azure_cli, client_factory,
        )

        assert await resolver.resolve() is None
        azure_cli.ensure_available.assert_called_once()
        client_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_remote_parse_failure_does_not_abort_chain(self, git, azure_cli, client_factory):
        git.get_remote_url.return_value = "https://github.com/user/repo"
        azure_cli.list_active_pull_requests.return_value = [cli_pr(8)]
        resolver = make_resolver(make_settings(azure_devops_token="pat"), git, azure_cli, client_factory)

        config = await resolver.resolve()

        assert config.pr_id == "8"
        client_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_network_failure_falls_back_to_env(self, git, azure_cli, client_factory, ado_client):
        ado_client.find_pull_request.side_effect = ConnectionError("network down")
        azure_cli.ensure_available.side_effect = AzureCliError("Azure CLI (az) is not installed")
        settings = make_settings(
            azure_devops_token="pat",
            azure_devops_org="org",
            azure_devops_project="proj",
            azure_devops_repo="repo",
            azure_devops_pr_id="11",
        )
        resolver = make_resolver(settings, git, azure_cli, client_factory)

        config = await resolver.resolve()

        assert config.org == "org"
        assert config.pr_id == "11"

    @pytest.mark.asyncio
    async def test_use_env_vars_skips_other_strategies(self, git, azure_cli, client_factory):
        settings = make_settings(
            azure_devops_token="pat",
            azure_devops_org="org",
            azure_devops_project="proj",
            azure_devops_repo="repo",
        )
        resolver = make_resolver(settings, git, azure_cli, client_factory)

        config = await resolver.resolve(pr_id="5", use_env_vars=True)

        assert config.pr_id == "5"
        git.is_git_repository.assert_not_called()
        azure_cli.ensure_available.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_found(self, git, azure_cli, client_factory):
        git.is_git_repository.return_value = False
        resolver = make_resolver(make_settings(), git, azure_cli, client_factory)

        assert await resolver.resolve() is None

    def test_strategy_order(self, git, azure_cli, client_factory):
        resolver = make_resolver(make_settings(), git, azure_cli, client_factory)

        assert [name for name, _ in resolver.strategies()] == ["git_api", "azure_cli", "env_vars"]
        assert [name for name, _ in resolver.strategies(use_env_vars=True)] == ["env_vars"]
