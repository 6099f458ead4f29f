"""Data types shared across the review pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from precheck_core.gh.client import GitHubClient
    from precheck_core.providers.base import BaseCompletions


class CodeReviewStatus(str, Enum):
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


class ReviewOutcome(Enum):
    """What perform_pull_precheck() ended up doing.

    Every outcome is reported with HTTP-style status 200; this enum lets
    callers tell a submitted review apart from a skip without matching on
    the reason text.
    """

    REVIEWED = "reviewed"
    SKIPPED_DRAFT = "skipped_draft"
    SKIPPED_CLOSED = "skipped_closed"
    SKIPPED_THROTTLED = "skipped_throttled"


@dataclass(frozen=True)
class PullRequestSnapshot:
    """The subset of the webhook ``pull_request`` object the pipeline reads."""

    number: int
    node_id: str
    draft: bool
    state: str
    body: str | None
    base_owner: str
    base_repo: str
    title: str = ""
    html_url: str = ""


@dataclass(frozen=True)
class ReviewContext:
    """Everything one review invocation needs, bound once per webhook delivery.

    The context is never mutated. Side effects only happen through the
    ``github`` and ``completions`` handles.
    """

    pull_request: PullRequestSnapshot
    sender: str
    owner: str
    repo: str
    action: str
    github: GitHubClient
    completions: BaseCompletions
    event_name: str = ""
    organization: str | None = None
    installation_id: int | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    config: Mapping[str, Any] = field(default_factory=dict)

    @property
    def model(self) -> str:
        """The language model selected for the configured provider."""
        provider = self.config.get("model", "anthropic")
        return self.config[f"{provider}_ai_model"]

    @property
    def app_name(self) -> str:
        return self.env.get("UBIQUITY_OS_APP_NAME") or self.config.get("app_name", "UbiquityOS")


@dataclass
class PullReviewVerdict:
    # 0..1 is expected from the model but not enforced.
    confidence_threshold: float
    review_comment: str


@dataclass(frozen=True)
class IssueRepository:
    name: str | None
    owner: str | None


@dataclass(frozen=True)
class ClosingIssueRef:
    """An issue GitHub resolved as closed by the pull request."""

    number: int
    title: str
    url: str
    body: str | None
    repository: IssueRepository


@dataclass
class ClosingIssuesResult:
    """Outcome of the closing-references lookup.

    ``error`` is set when the GraphQL call failed and the failure was
    collapsed into an empty result.
    """

    closes_issues: bool
    issues: list[ClosingIssueRef] = field(default_factory=list)
    error: str | None = None


@dataclass
class RepoSignals:
    """Read-only snapshot of what the repository declares about itself."""

    languages: list[tuple[str, int]] = field(default_factory=list)
    dependencies: dict[str, str] | None = None
    dev_dependencies: dict[str, str] | None = None


@dataclass
class TaskIssue:
    """The issue a pull request is meant to resolve."""

    number: int
    title: str
    body: str | None
    html_url: str = ""


@dataclass
class TokenUsage:
    input: int = 0
    output: int = 0
    total: int = 0


@dataclass
class CompletionResult:
    answer: str
    ground_truths: list[str] = field(default_factory=list)
    token_usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass
class CallbackResult:
    """Result handed back to the dispatch layer."""

    status: int
    reason: str
    outcome: ReviewOutcome = ReviewOutcome.REVIEWED
