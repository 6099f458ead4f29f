"""Exception hierarchy for the review pipeline.

Every fatal condition raises a PrecheckError subclass so the dispatch layer
can translate it into a failure response. The ``details`` mapping carries the
offending data (closing issues, parsed model output, API error) that was also
written to the log when the error was raised.
"""

from __future__ import annotations

from typing import Any


class PrecheckError(RuntimeError):
    """Base class for fatal errors that abort a review invocation."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class TaskLinkError(PrecheckError):
    """The pull request could not be tied to exactly one task."""


class TaskNotLinkedError(TaskLinkError):
    """No closing reference and no ``#<number>`` mention in the PR body."""


class MultipleTasksLinkedError(TaskLinkError):
    """The pull request closes more than one issue."""


class TaskNotFoundError(TaskLinkError):
    """A link was found but did not resolve to a usable issue number."""


class IssueNotFoundError(PrecheckError):
    """The linked issue does not exist or is not readable."""


class ReviewParseError(PrecheckError):
    """The model output is not a valid review verdict."""


class ReviewSubmissionError(PrecheckError):
    """GitHub rejected the review submission."""


class DraftConversionError(PrecheckError):
    """The convertPullRequestToDraft mutation failed."""


class ReviewThrottledError(PrecheckError):
    """A bot review was already submitted inside the current review window."""


class CompletionError(PrecheckError):
    """The language model provider call failed."""
