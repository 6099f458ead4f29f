"""Tests for building the per-invocation ReviewContext from a webhook payload."""

import dataclasses

import pytest

from precheck_core.context import SUPPORTED_EVENTS, build_review_context, get_completions, snapshot_pull_request


def _payload(**pr_overrides):
    pull_request = {
        "number": 7,
        "node_id": "PR_kwDOABC",
        "draft": False,
        "state": "open",
        "body": "Resolves #2",
        "title": "Add the flag",
        "html_url": "https://github.com/ubiquity/fork-repo/pull/7",
        "base": {"repo": {"name": "upstream-repo", "owner": {"login": "upstream"}}},
    }
    pull_request.update(pr_overrides)
    return {
        "action": "opened",
        "pull_request": pull_request,
        "repository": {"name": "fork-repo", "owner": {"login": "ubiquity"}},
        "sender": {"login": "contributor"},
        "organization": {"login": "ubiquity"},
        "installation": {"id": 42},
    }


CONFIG = {"model": "openai", "openai_ai_model": "gpt-4o", "app_name": "UbiquityOS"}


class TestSnapshotPullRequest:
    def test_reads_base_repository(self):
        snapshot = snapshot_pull_request(_payload()["pull_request"])
        assert snapshot.base_owner == "upstream"
        assert snapshot.base_repo == "upstream-repo"
        assert snapshot.node_id == "PR_kwDOABC"

    def test_missing_optional_fields(self):
        pr = _payload()["pull_request"]
        del pr["draft"], pr["body"], pr["title"]
        snapshot = snapshot_pull_request(pr)
        assert snapshot.draft is False
        assert snapshot.body is None
        assert snapshot.title == ""


class TestBuildReviewContext:
    def test_binds_payload_fields(self, github, completions):
        ctx = build_review_context(
            _payload(),
            config=CONFIG,
            github=github,
            completions=completions,
            event_name="pull_request.opened",
            env={},
        )
        assert ctx.owner == "ubiquity"
        assert ctx.repo == "fork-repo"
        assert ctx.sender == "contributor"
        assert ctx.action == "opened"
        assert ctx.organization == "ubiquity"
        assert ctx.installation_id == 42
        assert ctx.pull_request.number == 7
        assert ctx.github is github
        assert ctx.completions is completions

    def test_context_is_immutable(self, github, completions):
        ctx = build_review_context(_payload(), config=CONFIG, github=github, completions=completions, env={})
        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.owner = "someone-else"

    def test_config_is_copied(self, github, completions):
        config = dict(CONFIG)
        ctx = build_review_context(_payload(), config=config, github=github, completions=completions, env={})
        config["model"] = "anthropic"
        assert ctx.config["model"] == "openai"

    def test_missing_pull_request_raises(self, github, completions):
        with pytest.raises(KeyError):
            build_review_context({"repository": {}}, config=CONFIG, github=github, completions=completions)

    def test_environment_defaults_to_process_env(self, github, completions, monkeypatch):
        monkeypatch.setenv("UBIQUITY_OS_APP_NAME", "EnvBot")
        ctx = build_review_context(_payload(), config=CONFIG, github=github, completions=completions)
        assert ctx.app_name == "EnvBot"


class TestContextProperties:
    def test_model_follows_provider(self, make_context):
        assert make_context().model == "claude-3-7-sonnet-20250219"

    def test_app_name_prefers_environment(self, github, completions):
        ctx = build_review_context(
            _payload(), config=CONFIG, github=github, completions=completions, env={"UBIQUITY_OS_APP_NAME": "X"}
        )
        assert ctx.app_name == "X"

    def test_app_name_falls_back_to_config(self, github, completions):
        config = {**CONFIG, "app_name": "ConfiguredBot"}
        ctx = build_review_context(_payload(), config=config, github=github, completions=completions, env={})
        assert ctx.app_name == "ConfiguredBot"


class TestGetCompletions:
    def test_anthropic(self, mocker):
        provider = mocker.patch("precheck_core.context.AnthropicCompletions")
        assert get_completions({"model": "anthropic", "anthropic_api_key": "ak"}) is provider.return_value
        provider.assert_called_once_with(api_key="ak")

    def test_openai(self, mocker):
        provider = mocker.patch("precheck_core.context.OpenAICompletions")
        assert get_completions({"model": "openai", "openai_api_key": "ok"}) is provider.return_value
        provider.assert_called_once_with(api_key="ok")

    def test_unknown_provider_raises(self):
        with pytest.raises(ValueError, match="Unknown model provider"):
            get_completions({"model": "llama"})


def test_supported_events():
    assert SUPPORTED_EVENTS == ("pull_request.opened", "pull_request.ready_for_review")
