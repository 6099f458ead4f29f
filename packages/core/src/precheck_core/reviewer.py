"""Pull request review orchestration.

perform_pull_precheck() runs the cheap checks (draft, closed, one review per
day) and, when they pass, the full pipeline:

    task number → issue → spec + diff → ground truths → completion
                → verdict → (draft conversion) → review submission

Every external call is made once. Fatal conditions raise a PrecheckError
subclass; only the precheck skips are reported as results.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable

import requests
from github import GithubException

from precheck_core import task_linker
from precheck_core.errors import (
    DraftConversionError,
    IssueNotFoundError,
    ReviewParseError,
    ReviewSubmissionError,
    ReviewThrottledError,
)
from precheck_core.gh.client import GitHubClient, GraphQLError
from precheck_core.gh.issues import fetch_issue, format_spec_and_pull
from precheck_core.ground_truths import (
    collect_ground_truths,
    fetch_repo_dependencies,
    fetch_repo_language_stats,
    find_ground_truths,
)
from precheck_core.models import (
    CallbackResult,
    ClosingIssuesResult,
    CodeReviewStatus,
    CompletionResult,
    PullReviewVerdict,
    RepoSignals,
    ReviewContext,
    ReviewOutcome,
)
from precheck_core.throttle import check_review_window
from precheck_core.utils.loose_json import LooseJsonError, parse_loose_json

logger = logging.getLogger(__name__)

# Below this confidence the PR goes back to draft and changes are requested.
DRAFT_CONFIDENCE_THRESHOLD = 0.5

# Number of repository signals collect_ground_truths() checks. When every one
# of them is empty the repository facts are used as the ground truths.
_REPO_SIGNAL_COUNT = 3


def decide_review_event(confidence: float) -> tuple[CodeReviewStatus, bool]:
    """Return (review event, whether to convert the PR to draft first).

    Both effects come from the same comparison: a low-confidence verdict
    requests changes and demotes the PR to draft.
    """
    if confidence < DRAFT_CONFIDENCE_THRESHOLD:
        return CodeReviewStatus.REQUEST_CHANGES, True
    return CodeReviewStatus.COMMENT, False


def _is_numeric(value) -> bool:
    """True for finite numbers and plain decimal strings; bools are not numbers."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, str):
        # float() also takes "1_000", "inf" and "nan"; none is a valid confidence.
        if "_" in value:
            return False
        try:
            return math.isfinite(float(value))
        except ValueError:
            return False
    return False


class PullReviewer:
    def __init__(self, context: ReviewContext, clock: Callable[[], datetime] | None = None):
        self.context = context
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def perform_pull_precheck(self) -> CallbackResult:
        """Decide whether a review is needed and run it if so."""
        pr = self.context.pull_request

        if pr.draft:
            return self._skip("PR is in draft mode, no action required", ReviewOutcome.SKIPPED_DRAFT)
        if pr.state == "closed":
            return self._skip("PR is closed, no action required", ReviewOutcome.SKIPPED_CLOSED)

        try:
            allowed = self.can_perform_review()
        except ReviewThrottledError as e:
            return self._skip(f"Cannot perform review at this time: {e}", ReviewOutcome.SKIPPED_THROTTLED)
        if not allowed:
            return self._skip("Cannot perform review at this time", ReviewOutcome.SKIPPED_THROTTLED)

        return self._handle_code_review()

    def _skip(self, reason: str, outcome: ReviewOutcome) -> CallbackResult:
        logger.info(reason)
        return CallbackResult(status=200, reason=reason, outcome=outcome)

    def _handle_code_review(self) -> CallbackResult:
        completion = self.review_pull()
        verdict = self.parse_pull_review_data(completion.answer)

        status, convert_to_draft = decide_review_event(verdict.confidence_threshold)
        if convert_to_draft:
            self.convert_pull_to_draft(self.context.pull_request.node_id, self.context.github)

        self.submit_code_review(verdict.review_comment, status)
        return CallbackResult(status=200, reason="Success", outcome=ReviewOutcome.REVIEWED)

    def submit_code_review(self, review: str, status: CodeReviewStatus | str) -> None:
        ctx = self.context
        number = ctx.pull_request.number
        event = status.value if isinstance(status, CodeReviewStatus) else status

        logger.info(
            "%s/%s#%d - %s - %s - %s", ctx.organization or ctx.owner, ctx.repo, number, ctx.action, ctx.sender, review
        )

        try:
            html_url = ctx.github.create_review(ctx.owner, ctx.repo, number, review, event)
        except (GithubException, requests.RequestException) as e:
            logger.error("Failed to submit code review on %s/%s#%d: %s", ctx.owner, ctx.repo, number, e)
            raise ReviewSubmissionError(
                "Failed to submit code review",
                details={"status": getattr(e, "status", None), "data": getattr(e, "data", None), "event": event},
            ) from e
        logger.info("Code review submitted: %s", html_url)

    def can_perform_review(self) -> bool:
        """Return True when no bot review was submitted in the last 24 hours.

        Raises ReviewThrottledError otherwise.
        """
        ctx = self.context
        number = ctx.pull_request.number
        logger.info("%s/%s#%d - %s", ctx.organization or ctx.owner, ctx.repo, number, ctx.action)
        events = ctx.github.list_events(ctx.owner, ctx.repo, number)
        return check_review_window(events, self._clock())

    def convert_pull_to_draft(self, node_id: str, client: GitHubClient | None = None) -> None:
        client = client or self.context.github
        try:
            client.convert_pull_to_draft(node_id)
        except (GraphQLError, requests.RequestException) as e:
            logger.error("Failed to convert pull request to draft mode: %s", e)
            raise DraftConversionError(
                "Failed to convert pull request to draft mode", details={"node_id": node_id, "error": str(e)}
            ) from e
        logger.info("Successfully converted pull request to draft mode.")

    def review_pull(self) -> CompletionResult:
        """Gather the task, diff and ground truths, and ask the model for a verdict."""
        ctx = self.context
        completions = ctx.completions

        task_number = self.get_task_number_from_pull_request(ctx)
        issue = fetch_issue(ctx, task_number)
        if issue is None:
            details = {"owner": ctx.owner, "repo": ctx.repo, "issue_number": task_number}
            logger.error("Error fetching issue, Aborting: %s", details)
            raise IssueNotFoundError("Error fetching issue, Aborting", details=details)

        task_specification = issue.body or ""
        formatted_spec_and_pull = format_spec_and_pull(ctx, issue)
        signals = self._fetch_repo_signals()

        ground_truths = self._collect_ground_truths(signals.languages, signals.dependencies, signals.dev_dependencies)
        if len(ground_truths) != _REPO_SIGNAL_COUNT:
            ground_truths = find_ground_truths(ctx, task_specification)

        return completions.create_completion(
            ctx.model,
            formatted_spec_and_pull,
            ground_truths,
            ctx.app_name,
            completions.get_model_max_token_limit(ctx.model),
        )

    def _fetch_repo_signals(self) -> RepoSignals:
        # Both fetches must succeed; .result() re-raises the first failure.
        with ThreadPoolExecutor(max_workers=2) as pool:
            languages_future = pool.submit(fetch_repo_language_stats, self.context)
            dependencies_future = pool.submit(fetch_repo_dependencies, self.context)
            languages = languages_future.result()
            dependencies, dev_dependencies = dependencies_future.result()
        return RepoSignals(languages=languages, dependencies=dependencies, dev_dependencies=dev_dependencies)

    @staticmethod
    def _collect_ground_truths(
        languages: list[tuple[str, int]],
        dependencies: dict[str, str] | None,
        dev_dependencies: dict[str, str] | None,
    ) -> list[str]:
        return collect_ground_truths(languages, dependencies, dev_dependencies)

    def check_if_pr_closes_issues(
        self, client: GitHubClient, *, owner: str, repo: str, pr_number: int
    ) -> ClosingIssuesResult:
        return task_linker.check_if_pr_closes_issues(client, owner=owner, repo=repo, pr_number=pr_number)

    def get_task_number_from_pull_request(self, context: ReviewContext | None = None) -> int:
        return task_linker.get_task_number_from_pull_request(
            context or self.context,
            closes_issues=self.check_if_pr_closes_issues,
            convert_to_draft=self.convert_pull_to_draft,
        )

    def parse_pull_review_data(self, raw: str) -> PullReviewVerdict:
        """Parse the model answer into a verdict, rejecting anything malformed."""
        try:
            parsed = parse_loose_json(raw)
        except LooseJsonError as e:
            logger.error("Couldn't parse JSON output; Aborting: %s", e)
            raise ReviewParseError("Couldn't parse JSON output; Aborting", details={"raw": raw[:500]}) from e

        if not isinstance(parsed, dict):
            logger.error("Review output is not a JSON object: %r", parsed)
            raise ReviewParseError("Review output is not a JSON object", details={"parsed": parsed})

        raw_threshold = parsed.get("confidenceThreshold")
        if not _is_numeric(raw_threshold):
            logger.error("Invalid or missing confidenceThreshold: %r", parsed)
            raise ReviewParseError("Invalid or missing confidenceThreshold", details={"parsed": parsed})

        raw_comment = parsed.get("reviewComment")
        if not isinstance(raw_comment, str):
            logger.error("Invalid or missing reviewComment: %r", parsed)
            raise ReviewParseError("Invalid or missing reviewComment", details={"parsed": parsed})

        return PullReviewVerdict(confidence_threshold=float(raw_threshold), review_comment=raw_comment)
