"""Shared fixtures: a ReviewContext wired to mocked GitHub and completion clients."""

from unittest.mock import MagicMock

import pytest

from precheck_core.models import CompletionResult, PullRequestSnapshot, ReviewContext, TokenUsage

MOCK_ANSWER_PASSED = "{confidenceThreshold: 1, reviewComment: 'passed'}"
REVIEW_URL = "https://github.com/ubiquity/test-repo/pull/3#pullrequestreview-1"


@pytest.fixture
def github():
    client = MagicMock()
    client.create_review.return_value = REVIEW_URL
    client.list_events.return_value = []
    client.graphql.return_value = {"repository": {"pullRequest": {"closingIssuesReferences": {"edges": []}}}}
    return client


@pytest.fixture
def completions():
    client = MagicMock()
    client.get_model_max_token_limit.return_value = 50000
    client.get_model_max_output_limit.return_value = 50000
    client.create_completion.return_value = CompletionResult(
        answer=MOCK_ANSWER_PASSED,
        ground_truths=[""],
        token_usage=TokenUsage(input=1000, output=150, total=1150),
    )
    client.create_ground_truth_completion.return_value = '[""]'
    return client


@pytest.fixture
def make_context(github, completions):
    def _make(**pr_overrides):
        pr_fields = {
            "number": 3,
            "node_id": "PR_kwDOKzVPS85ZdB4c",
            "draft": False,
            "state": "open",
            "body": "Resolves #1",
            "base_owner": "ubiquity",
            "base_repo": "test-repo",
            "title": "Add the thing",
            "html_url": "https://github.com/ubiquity/test-repo/pull/3",
        }
        pr_fields.update(pr_overrides)
        return ReviewContext(
            pull_request=PullRequestSnapshot(**pr_fields),
            sender="contributor",
            owner="ubiquity",
            repo="test-repo",
            action="ready_for_review",
            github=github,
            completions=completions,
            event_name="pull_request.ready_for_review",
            organization="ubiquity",
            installation_id=1,
            env={"UBIQUITY_OS_APP_NAME": "UbiquityOS"},
            config={
                "model": "anthropic",
                "anthropic_ai_model": "claude-3-7-sonnet-20250219",
                "exclude": [],
                "max_diff_chars": 60000,
            },
        )

    return _make


def closing_edges(*numbers):
    return {
        "repository": {
            "pullRequest": {
                "closingIssuesReferences": {
                    "edges": [
                        {
                            "node": {
                                "number": n,
                                "title": f"Task {n}",
                                "url": f"https://github.com/ubiquity/test-repo/issues/{n}",
                                "body": f"Spec for task {n}",
                                "repository": {"name": "test-repo", "owner": {"login": "ubiquity"}},
                            }
                        }
                        for n in numbers
                    ]
                }
            }
        }
    }


@pytest.fixture
def closing_issues_payload():
    """Build a closingIssuesReferences GraphQL response for the given issue numbers."""
    return closing_edges
