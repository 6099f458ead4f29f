from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from github import GithubException

from precheck_core.gh.pull_request import fetch_pull_request_diff
from precheck_core.models import TaskIssue

if TYPE_CHECKING:
    from precheck_core.models import ReviewContext

logger = logging.getLogger(__name__)


def fetch_issue(context: ReviewContext, issue_number: int) -> TaskIssue | None:
    """Return the issue from the pull request's repository, or None if it cannot be read."""
    try:
        issue = context.github.get_repo(context.owner, context.repo).get_issue(issue_number)
    except GithubException as e:
        logger.warning("Could not fetch issue %s/%s#%d: %s", context.owner, context.repo, issue_number, e)
        return None
    return TaskIssue(number=issue.number, title=issue.title or "", body=issue.body, html_url=issue.html_url or "")


def format_spec_and_pull(context: ReviewContext, issue: TaskIssue) -> str:
    """Render the task specification and the pull request diff as one prompt section."""
    pr = context.pull_request
    diff = fetch_pull_request_diff(context).diff

    return f"""## Task Specification
Issue #{issue.number}: {issue.title}
{issue.html_url}

{issue.body or "No specification provided."}

## Pull Request
#{pr.number}: {pr.title}
{pr.html_url}

{pr.body or ""}

## Diff
```diff
{diff}
```"""
