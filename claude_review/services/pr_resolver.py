"""
PR Resolver component.

Works out which Azure DevOps pull request the current branch belongs to.
Strategies are tried in order and the first complete AzureConfig wins:

1. git remote + Azure DevOps API (needs AZURE_DEVOPS_TOKEN)
2. Azure CLI auto-detection (``az repos pr list --detect``)
3. Environment variables (AZURE_DEVOPS_ORG/PROJECT/REPO/PR_ID)

Each strategy returns an AzureConfig or None. A strategy that raises is
logged and treated like None, so a broken remote or a missing ``az`` never
stops the chain.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from claude_review.config import Settings
from claude_review.models.pull_request import AzureConfig, branch_from_ref
from claude_review.services.ado_client import AzureDevOpsClient
from claude_review.services.azure_cli import AzureCli
from claude_review.services.git_inspector import GitInspector
from claude_review.utils.logging import get_logger, log_strategy_attempt
from claude_review.utils.remote import extract_organization_from_pr_url, parse_azure_devops_remote


logger = get_logger(__name__)


ClientFactory = Callable[[str, str], AzureDevOpsClient]
Strategy = Callable[[Optional[str]], Awaitable[Optional[AzureConfig]]]


class PRResolver:
    """Resolves the AzureConfig for the pull request of the current branch."""

    def __init__(
        self,
        settings: Settings,
        git: GitInspector,
        azure_cli: Optional[AzureCli] = None,
        client_factory: ClientFactory = AzureDevOpsClient,
    ):
        """
        Initialize the resolver.

        Args:
            settings: Environment-derived settings (token and fallbacks)
            git: Git inspector for the reviewed directory
            azure_cli: az wrapper, created for the git directory when None
            client_factory: Builds an SDK client from (organization, token)
        """
        self.settings = settings
        self.git = git
        self.azure_cli = azure_cli or AzureCli(cwd=git.cwd)
        self.client_factory = client_factory

    def strategies(self, use_env_vars: bool = False) -> List[Tuple[str, Strategy]]:
        """Ordered strategies; forcing env vars skips straight to the last one."""
        env_vars = ("env_vars", self.from_env_vars)
        if use_env_vars:
            return [env_vars]
        return [
            ("git_api", self.from_git_and_api),
            ("azure_cli", self.from_azure_cli),
            env_vars,
        ]

    async def resolve(
        self,
        pr_id: Optional[str] = None,
        use_env_vars: bool = False
    ) -> Optional[AzureConfig]:
        """
        Try each strategy in turn.

        Args:
            pr_id: Explicit pull request id; used as-is without branch matching
            use_env_vars: Only consult environment variables

        Returns:
            AzureConfig for the pull request, or None when nothing was found
        """
        for name, strategy in self.strategies(use_env_vars):
            try:
                config = await strategy(pr_id)
            except Exception as e:
                log_strategy_attempt(logger, name, "failed", error=f"{type(e).__name__}: {e}")
                continue

            if config is not None:
                log_strategy_attempt(logger, name, "resolved")
                logger.info(
                    f"Resolved PR {config.pr_id}",
                    extra={
                        "pr_id": config.pr_id,
                        "organization": config.org,
                        "project": config.project,
                        "repository": config.repo,
                        "strategy": name,
                    }
                )
                return config

            log_strategy_attempt(logger, name, "no_result")

        return None

    async def from_git_and_api(self, pr_id: Optional[str] = None) -> Optional[AzureConfig]:
        """
        Derive the repository from the git remote and search the API by branch.

        Raises:
            RemoteParseError: If origin is not an Azure DevOps remote
        """
        if not self.git.is_git_repository():
            logger.debug("Not in a git repository")
            return None

        token = self.settings.azure_devops_token
        if not token:
            logger.debug("AZURE_DEVOPS_TOKEN not found")
            return None

        branch = self.git.get_current_branch()
        remote = parse_azure_devops_remote(self.git.get_remote_url())
        logger.debug(
            f"Current branch: {branch}",
            extra={"organization": remote.organization, "project": remote.project, "repository": remote.repository}
        )

        if pr_id:
            logger.debug(f"Using user-specified PR ID: {pr_id}")
            return AzureConfig(
                token=token,
                org=remote.organization,
                project=remote.project,
                repo=remote.repository,
                pr_id=str(pr_id),
            )

        client = self.client_factory(remote.organization, token)
        pr = await client.find_pull_request(remote, branch)
        if pr is None:
            return None

        return AzureConfig(
            token=token,
            org=remote.organization,
            project=remote.project,
            repo=remote.repository,
            pr_id=str(pr.id),
        )

    async def from_azure_cli(self, pr_id: Optional[str] = None) -> Optional[AzureConfig]:
        """
        Ask ``az`` for active pull requests and pick the one for this branch.

        Raises:
            AzureCliError: If az is unavailable or fails
        """
        await asyncio.to_thread(self.azure_cli.ensure_available)

        if pr_id:
            logger.debug(f"Fetching user-specified PR {pr_id} via Azure CLI")
            pr = await asyncio.to_thread(self.azure_cli.show_pull_request, pr_id)
            return self.config_from_cli_pr(pr)

        branch = self.git.get_current_branch()
        prs = await asyncio.to_thread(self.azure_cli.list_active_pull_requests)

        for pr in prs:
            source_branch = branch_from_ref(str(pr.get("sourceRefName") or ""))
            logger.debug(f"Checking PR branch: {source_branch} against current: {branch}")
            if source_branch == branch:
                return self.config_from_cli_pr(pr)

        logger.debug(f"No active PR matches branch {branch}")
        return None

    def config_from_cli_pr(self, pr: Dict[str, Any]) -> Optional[AzureConfig]:
        """
        Normalize an ``az repos pr`` JSON object into an AzureConfig.

        The organization is read from the PR's own url, which only matches
        the legacy ``https://<org>.visualstudio.com`` form.
        """
        pr_id = str(pr["pullRequestId"])
        repo = pr["repository"]["name"]
        project = pr["repository"]["project"]["name"]

        org = extract_organization_from_pr_url(pr.get("url"))
        if not org:
            logger.warning(
                "Could not extract organization from PR URL",
                extra={"pr_id": pr_id, "url": pr.get("url")}
            )
            return None

        token = self.settings.azure_devops_token
        if not token:
            logger.warning("AZURE_DEVOPS_TOKEN environment variable is required", extra={"pr_id": pr_id})
            return None

        return AzureConfig(token=token, org=org, project=project, repo=repo, pr_id=pr_id)

    async def from_env_vars(self, pr_id: Optional[str] = None) -> Optional[AzureConfig]:
        """Build the config purely from AZURE_DEVOPS_* variables."""
        settings = self.settings
        resolved_pr_id = pr_id or settings.azure_devops_pr_id
        values = (
            settings.azure_devops_token,
            settings.azure_devops_org,
            settings.azure_devops_project,
            settings.azure_devops_repo,
            resolved_pr_id,
        )
        if not all(values):
            return None

        return AzureConfig(
            token=settings.azure_devops_token,
            org=settings.azure_devops_org,
            project=settings.azure_devops_project,
            repo=settings.azure_devops_repo,
            pr_id=str(resolved_pr_id),
        )
