"""
Comment Reconciler component.

Posts the review to a pull request as a "sticky" comment: the thread whose
first comment carries the review heading is updated in place instead of
adding a new thread on every run.

Talks to the Azure DevOps REST API (api-version 7.1) with HTTP Basic auth,
empty username and the PAT as password.
"""

import time
from typing import Any, Dict, Optional

import httpx

from claude_review.models.comment import ExistingComment, PostAction, PostMode, PostResult
from claude_review.models.pull_request import AzureConfig
from claude_review.utils.logging import get_logger, log_api_call


logger = get_logger(__name__)


API_VERSION = "7.1"
REVIEW_HEADING = "# Claude Code Review"
UPDATE_SEPARATOR = "\n\n---\n\n**Updated Review:**\n\n"

# Azure DevOps enum values
COMMENT_TYPE_TEXT = 1
THREAD_STATUS_ACTIVE = 1


def compose_review(review: str) -> str:
    """Review text under the heading that marks the sticky comment."""
    return f"{REVIEW_HEADING}\n\n{review}"


def compose_appended_review(existing_content: str, review: str) -> str:
    """Previous content followed by the new review."""
    return f"{existing_content}{UPDATE_SEPARATOR}{review}"


def find_review_comment(threads: Any) -> Optional[ExistingComment]:
    """
    Pick the first thread whose first comment contains the review heading.

    Threads are scanned in API response order; later matches are ignored.
    Bodies and entries of an unexpected shape are treated as "not found".

    Args:
        threads: Decoded body of the list-threads response

    Returns:
        ExistingComment, or None when no thread carries the heading
    """
    if not isinstance(threads, dict):
        return None
    values = threads.get("value")
    if not isinstance(values, list):
        return None

    for thread in values:
        if not isinstance(thread, dict):
            continue
        comments = thread.get("comments")
        if not isinstance(comments, list) or not comments:
            continue
        first_comment = comments[0]
        if not isinstance(first_comment, dict):
            continue
        content = first_comment.get("content")
        if isinstance(content, str) and REVIEW_HEADING in content:
            return ExistingComment(
                thread_id=str(thread.get("id")),
                comment_id=str(first_comment.get("id")),
                existing_content=content,
            )
    return None


class CommentReconciler:
    """Creates or updates the review comment on one pull request."""

    def __init__(self, config: AzureConfig, http_client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the reconciler.

        Args:
            config: Pull request coordinates and token
            http_client: Client to use; one is created per call when None
        """
        self.config = config
        self._http_client = http_client
        self._auth = httpx.BasicAuth("", config.token)
        self._params = {"api-version": API_VERSION}

    async def _request(
        self,
        method: str,
        url: str,
        json_body: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """
        Send one REST request and log it.

        Raises:
            httpx.HTTPError: On transport failure
        """
        headers = {"Accept": "application/json"}
        start_time = time.time()

        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, params=self._params, json=json_body, headers=headers, auth=self._auth
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.request(
                        method, url, params=self._params, json=json_body, headers=headers, auth=self._auth
                    )
        except httpx.HTTPError as e:
            log_api_call(
                logger,
                service="azure_devops",
                endpoint=url,
                method=method,
                duration_ms=(time.time() - start_time) * 1000,
                error=str(e)
            )
            raise

        log_api_call(
            logger,
            service="azure_devops",
            endpoint=url,
            method=method,
            status_code=response.status_code,
            duration_ms=(time.time() - start_time) * 1000
        )
        return response

    async def find_existing_comment(self) -> Optional[ExistingComment]:
        """
        Look for a previous review comment on the pull request.

        Best effort: transport errors, error statuses, undecodable bodies and
        bodies of an unexpected shape all count as "not found" so a new
        comment can still be posted.
        """
        try:
            response = await self._request("GET", self.config.threads_url)
        except httpx.HTTPError as e:
            logger.warning(
                f"Could not search for existing comments: {e}",
                extra={"pr_id": self.config.pr_id}
            )
            return None

        if not response.is_success:
            logger.debug(f"Thread listing returned {response.status_code}", extra={"pr_id": self.config.pr_id})
            return None

        try:
            threads = response.json()
        except ValueError as e:
            logger.warning(f"Could not decode thread listing: {e}", extra={"pr_id": self.config.pr_id})
            return None

        return find_review_comment(threads)

    async def create_thread(self, content: str) -> httpx.Response:
        payload = {
            "comments": [
                {
                    "parentCommentId": 0,
                    "content": content,
                    "commentType": COMMENT_TYPE_TEXT,
                }
            ],
            "status": THREAD_STATUS_ACTIVE,
        }
        return await self._request("POST", self.config.threads_url, json_body=payload)

    async def update_comment(self, thread_id: str, content: str) -> httpx.Response:
        """Replace the content of the first comment of ``thread_id``."""
        url = f"{self.config.threads_url}/{thread_id}/comments/1"
        return await self._request("PATCH", url, json_body={"content": content})

    async def post_review(self, review: str, mode: PostMode = PostMode.REPLACE) -> PostResult:
        """
        Post the review according to ``mode``.

        - NEW: always create a fresh thread.
        - REPLACE: overwrite the existing review comment, or create one.
        - APPEND: add the review below the existing comment, or create one.

        Never raises; failures are reported in the returned PostResult.

        Args:
            review: Review markdown
            mode: Reconciliation mode

        Returns:
            PostResult with the action taken and the HTTP outcome
        """
        action = PostAction.CREATED
        existing: Optional[ExistingComment] = None

        try:
            if mode != PostMode.NEW:
                existing = await self.find_existing_comment()

            if existing is None:
                response = await self.create_thread(compose_review(review))
            elif mode == PostMode.APPEND:
                action = PostAction.APPENDED
                response = await self.update_comment(
                    existing.thread_id,
                    compose_appended_review(existing.existing_content, review)
                )
            else:
                action = PostAction.UPDATED
                response = await self.update_comment(existing.thread_id, compose_review(review))
        except httpx.HTTPError as e:
            logger.error(f"Error posting to Azure DevOps: {e}", extra={"pr_id": self.config.pr_id})
            return PostResult(success=False, action=action, error=str(e))

        result = PostResult(
            success=response.is_success,
            action=action,
            status_code=response.status_code,
            response_body=None if response.is_success else response.text,
            error=None if response.is_success else f"{response.status_code} {response.reason_phrase}",
        )

        if result.success:
            logger.info(f"Review {action.value} on PR {self.config.pr_id}", extra={"pr_id": self.config.pr_id})
        else:
            logger.error(
                f"Failed to post review: {result.error}",
                extra={"pr_id": self.config.pr_id, "response_body": result.response_body}
            )
        return result
