"""Build the immutable ReviewContext from a raw pull_request webhook payload."""

from __future__ import annotations

import os
from typing import Any, Mapping

from precheck_core.gh.client import GitHubClient
from precheck_core.models import PullRequestSnapshot, ReviewContext
from precheck_core.providers.anthropic import AnthropicCompletions
from precheck_core.providers.base import BaseCompletions
from precheck_core.providers.openai import OpenAICompletions

SUPPORTED_EVENTS = ("pull_request.opened", "pull_request.ready_for_review")


def get_completions(config: Mapping[str, Any]) -> BaseCompletions:
    model = config["model"]
    if model == "anthropic":
        return AnthropicCompletions(api_key=config["anthropic_api_key"])
    if model == "openai":
        return OpenAICompletions(api_key=config["openai_api_key"])
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'anthropic' or 'openai'.")


def snapshot_pull_request(pull_request: Mapping[str, Any]) -> PullRequestSnapshot:
    base_repo = pull_request["base"]["repo"]
    return PullRequestSnapshot(
        number=pull_request["number"],
        node_id=pull_request["node_id"],
        draft=bool(pull_request.get("draft")),
        state=pull_request.get("state", "open"),
        body=pull_request.get("body"),
        base_owner=base_repo["owner"]["login"],
        base_repo=base_repo["name"],
        title=pull_request.get("title") or "",
        html_url=pull_request.get("html_url") or "",
    )


def build_review_context(
    payload: Mapping[str, Any],
    *,
    config: Mapping[str, Any],
    github: GitHubClient,
    completions: BaseCompletions,
    event_name: str = "",
    env: Mapping[str, str] | None = None,
) -> ReviewContext:
    """Create the per-invocation context.

    Raises KeyError when the payload is not a pull_request event payload.
    """
    repository = payload["repository"]
    organization = payload.get("organization") or {}
    installation = payload.get("installation") or {}
    return ReviewContext(
        pull_request=snapshot_pull_request(payload["pull_request"]),
        sender=(payload.get("sender") or {}).get("login", ""),
        owner=repository["owner"]["login"],
        repo=repository["name"],
        action=payload.get("action", ""),
        github=github,
        completions=completions,
        event_name=event_name,
        organization=organization.get("login"),
        installation_id=installation.get("id"),
        env=dict(os.environ if env is None else env),
        config=dict(config),
    )
