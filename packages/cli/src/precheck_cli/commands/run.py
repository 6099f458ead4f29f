"""run command: precheck and review one pull request event."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console

from precheck_cli.auth import resolve_github_token
from precheck_core.config import load_config, settings_to_overrides
from precheck_core.context import SUPPORTED_EVENTS, build_review_context, get_completions
from precheck_core.errors import PrecheckError
from precheck_core.gh.client import GitHubClient
from precheck_core.models import ReviewOutcome
from precheck_core.reviewer import PullReviewer

console = Console()


def _load_payload(event_path: str) -> dict:
    try:
        payload = json.loads(Path(event_path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise click.BadParameter(f"Could not read event payload: {e}", param_hint="--event-path")
    if not isinstance(payload, dict) or "pull_request" not in payload:
        raise click.BadParameter("Event payload is not a pull_request event.", param_hint="--event-path")
    return payload


@click.command("run")
@click.option(
    "--event-path",
    required=True,
    envvar="GITHUB_EVENT_PATH",
    type=click.Path(dir_okay=False),
    help="Path to the pull_request webhook payload (JSON).",
)
@click.option(
    "--event-name",
    default=None,
    help="Event name such as pull_request.opened. Defaults to pull_request.<payload action>.",
)
@click.option(
    "--settings",
    default=None,
    envvar="PRECHECK_SETTINGS",
    help="Plugin settings as a JSON object (e.g. '{\"anthropicAiModel\": \"...\"}'). Overrides config file.",
)
@click.option("--auth-token", default=None, help="GitHub token. Falls back to GITHUB_TOKEN, then the gh CLI.")
@click.pass_context
def run_cmd(ctx, event_path: str, event_name: str | None, settings: str | None, auth_token: str | None):
    """Run the pull request precheck and, when it passes, the AI review.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub token (or --auth-token, or gh CLI)
      ANTHROPIC_API_KEY    Required when model is anthropic
      OPENAI_API_KEY       Required when model is openai
    """
    payload = _load_payload(event_path)
    event_name = event_name or f"pull_request.{payload.get('action', '')}"
    if event_name not in SUPPORTED_EVENTS:
        console.print(f"[yellow]Event {event_name} is not supported, nothing to do.[/yellow]")
        return

    overrides = {}
    if settings:
        try:
            overrides = settings_to_overrides(json.loads(settings))
        except (json.JSONDecodeError, AttributeError) as e:
            raise click.BadParameter(f"Settings must be a JSON object: {e}", param_hint="--settings")

    config_path = (ctx.obj or {}).get("config_path", ".precheck.yml")
    try:
        config = load_config(config_path, cli_overrides=overrides)
    except ValueError as e:
        raise click.UsageError(str(e))

    token = resolve_github_token(auth_token)
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN, pass --auth-token or run `gh auth login` first."
        )
    config["github_token"] = token

    if config["model"] == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")
    if config["model"] == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")

    context = build_review_context(
        payload,
        config=config,
        github=GitHubClient(token),
        completions=get_completions(config),
        event_name=event_name,
    )

    try:
        result = PullReviewer(context).perform_pull_precheck()
    except PrecheckError as e:
        console.print(f"[red]Review aborted: {e}[/red]")
        ctx.exit(1)

    color = "green" if result.outcome is ReviewOutcome.REVIEWED else "yellow"
    console.print(f"[{color}]{result.status} {result.reason}[/{color}]")
