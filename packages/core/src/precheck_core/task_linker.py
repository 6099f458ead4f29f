"""Resolve the single task (issue) a pull request is meant to close.

GitHub's closing references are the primary source. A ``#123`` mention in
the PR body is accepted as a fallback because contributors often reference
the issue without a closing keyword.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict
from typing import TYPE_CHECKING, Callable

from precheck_core.errors import MultipleTasksLinkedError, TaskNotFoundError, TaskNotLinkedError
from precheck_core.gh.queries import CLOSING_ISSUES_QUERY
from precheck_core.models import ClosingIssueRef, ClosingIssuesResult, IssueRepository

if TYPE_CHECKING:
    from precheck_core.gh.client import GitHubClient
    from precheck_core.models import ReviewContext

logger = logging.getLogger(__name__)

_ISSUE_MENTION_RE = re.compile(r"#(\d+)")


def check_if_pr_closes_issues(client: GitHubClient, *, owner: str, repo: str, pr_number: int) -> ClosingIssuesResult:
    """Return the issues GitHub resolves as closed by the pull request.

    A missing PR number is a programming error and raises immediately.
    A failed query is not: it is logged and reported as "no linked issues"
    so the caller falls back to scanning the PR body.
    """
    if not pr_number:
        raise ValueError("[check_if_pr_closes_issues]: pr_number is required")

    try:
        data = client.graphql(CLOSING_ISSUES_QUERY, {"owner": owner, "repo": repo, "pr_number": pr_number})
        edges = data["repository"]["pullRequest"]["closingIssuesReferences"]["edges"]
        issues = [_to_closing_issue(edge["node"]) for edge in edges]
    except Exception as e:
        logger.error("Error fetching closing issues for %s/%s#%d: %s", owner, repo, pr_number, e)
        return ClosingIssuesResult(closes_issues=False, issues=[], error=str(e))

    return ClosingIssuesResult(closes_issues=bool(issues), issues=issues)


def _to_closing_issue(node: dict) -> ClosingIssueRef:
    repository = node.get("repository") or {}
    owner = repository.get("owner")
    if isinstance(owner, dict):
        owner = owner.get("login")
    return ClosingIssueRef(
        number=node["number"],
        title=node.get("title") or "",
        url=node.get("url") or "",
        body=node.get("body"),
        repository=IssueRepository(name=repository.get("name"), owner=owner),
    )


def find_issue_mention(body: str | None) -> int | None:
    """Return the number from the first ``#<digits>`` token in the text."""
    match = _ISSUE_MENTION_RE.search(body or "")
    return int(match.group(1)) if match else None


def get_task_number_from_pull_request(
    context: ReviewContext,
    closes_issues: Callable[..., ClosingIssuesResult] = check_if_pr_closes_issues,
    convert_to_draft: Callable[[str], object] | None = None,
) -> int:
    """Return the issue number the pull request resolves.

    Raises TaskNotLinkedError (after converting the PR back to draft) when no
    issue is linked, and MultipleTasksLinkedError when more than one is.
    """
    pr = context.pull_request
    convert_to_draft = convert_to_draft or context.github.convert_pull_to_draft

    result = closes_issues(context.github, owner=pr.base_owner, repo=pr.base_repo, pr_number=pr.number)
    distinct = {(i.repository.owner, i.repository.name, i.number): i for i in result.issues}
    closing_issues = list(distinct.values())

    if not closing_issues:
        issue_number = find_issue_mention(pr.body)
        if issue_number is None:
            convert_to_draft(pr.node_id)
            message = "You need to link an issue and after that convert the PR to ready for review"
            logger.error(message)
            raise TaskNotLinkedError(message, details={"pull_request": pr.number})
    elif len(closing_issues) > 1:
        message = "Multiple tasks linked to this PR, needs investigated to see how best to handle it."
        logger.error("%s closing_issues=%s", message, [i.number for i in closing_issues])
        raise MultipleTasksLinkedError(
            message,
            details={"closing_issues": [asdict(i) for i in closing_issues], "pull_request": pr.number},
        )
    else:
        issue_number = closing_issues[0].number

    if not issue_number:
        logger.error("Task number not found for PR #%d", pr.number)
        raise TaskNotFoundError("Task number not found", details={"pull_request": pr.number})

    return issue_number
