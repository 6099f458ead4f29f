"""Thin GitHub API client used by the review pipeline.

Everything goes through PyGithub: REST via the usual object API, GraphQL
(closing references, draft conversion) via the same Requester, so both use
the same token and raise the same error type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from github import Auth, Github, GithubException

from precheck_core.gh.queries import CONVERT_TO_DRAFT_MUTATION

logger = logging.getLogger(__name__)


class GraphQLError(RuntimeError):
    """Raised when a GraphQL request fails or returns an ``errors`` payload."""

    def __init__(self, message: str, *, errors: list | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


@dataclass(frozen=True)
class TimelineEvent:
    """One entry of an issue/PR event listing, reduced to what the throttle reads."""

    event: str
    actor_type: str | None
    created_at: datetime


class GitHubClient:
    def __init__(self, token: str | None, github: Github | None = None):
        self.token = token
        self._github = github if github is not None else Github(auth=Auth.Token(token) if token else None)
        self._repos: dict[str, Any] = {}

    def get_repo(self, owner: str, repo: str):
        full_name = f"{owner}/{repo}"
        if full_name not in self._repos:
            self._repos[full_name] = self._github.get_repo(full_name)
        return self._repos[full_name]

    def get_pull(self, owner: str, repo: str, pull_number: int):
        return self.get_repo(owner, repo).get_pull(pull_number)

    def list_events(self, owner: str, repo: str, issue_number: int) -> list[TimelineEvent]:
        """Return the issue/PR events in the order GitHub lists them (oldest first)."""
        issue = self.get_repo(owner, repo).get_issue(issue_number)
        events = []
        for e in issue.get_events():
            actor = getattr(e, "actor", None)
            created_at = e.created_at
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            events.append(TimelineEvent(event=e.event, actor_type=getattr(actor, "type", None), created_at=created_at))
        return events

    def create_review(self, owner: str, repo: str, pull_number: int, body: str, event: str) -> str:
        """Submit a pull request review and return its html_url."""
        review = self.get_pull(owner, repo, pull_number).create_review(body=body, event=event)
        return review.html_url

    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a GraphQL document and return its ``data`` object.

        PyGithub raises GithubException for HTTP failures and for responses
        carrying ``errors``; both surface as GraphQLError.
        """
        try:
            _, body = self._github.requester.graphql_query(query, variables or {})
        except GithubException as e:
            errors = e.data.get("errors") if isinstance(e.data, dict) else None
            raise GraphQLError(f"GraphQL request failed with status {e.status}: {e.data}", errors=errors) from e

        if body.get("errors"):
            raise GraphQLError(f"GraphQL errors: {body['errors']}", errors=body["errors"])
        return body.get("data") or {}

    def convert_pull_to_draft(self, node_id: str) -> dict[str, Any]:
        data = self.graphql(CONVERT_TO_DRAFT_MUTATION, {"pullRequestId": node_id})
        return data.get("convertPullRequestToDraft", {}).get("pullRequest") or {}
