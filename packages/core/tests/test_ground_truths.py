"""Tests for repository-signal and specification-derived ground truths."""

import json
from unittest.mock import MagicMock

import pytest
from github import GithubException

from precheck_core.ground_truths import (
    GROUND_TRUTH_SYSTEM_PROMPT,
    NO_DEPENDENCIES,
    NO_DEV_DEPENDENCIES,
    NO_LANGUAGES,
    collect_ground_truths,
    fetch_repo_dependencies,
    fetch_repo_language_stats,
    find_ground_truths,
)


class TestCollectGroundTruths:
    def test_all_signals_missing_in_fixed_order(self):
        assert collect_ground_truths([], {}, {}) == [
            "No languages found in the repository",
            "No dependencies found in the repository",
            "No devDependencies found in the repository",
        ]

    def test_only_dev_dependencies_missing(self):
        assert collect_ground_truths([("ts", 100)], {"a": "1"}, {}) == ["No devDependencies found in the repository"]

    def test_nothing_missing(self):
        assert collect_ground_truths([("Python", 10)], {"a": "1"}, {"b": "2"}) == []

    def test_unknown_mappings_produce_no_fact(self):
        assert collect_ground_truths([], None, None) == [NO_LANGUAGES]

    def test_constants_match_messages(self):
        assert NO_DEPENDENCIES.startswith("No dependencies")
        assert NO_DEV_DEPENDENCIES.startswith("No devDependencies")


class TestFetchRepoLanguageStats:
    def test_sorted_largest_first(self, make_context, github):
        github.get_repo.return_value.get_languages.return_value = {"CSS": 10, "TypeScript": 900, "HTML": 40}
        assert fetch_repo_language_stats(make_context()) == [("TypeScript", 900), ("HTML", 40), ("CSS", 10)]
        github.get_repo.assert_called_once_with("ubiquity", "test-repo")

    def test_empty_repository(self, make_context, github):
        github.get_repo.return_value.get_languages.return_value = {}
        assert fetch_repo_language_stats(make_context()) == []


class TestFetchRepoDependencies:
    def _manifest(self, data):
        contents = MagicMock()
        contents.decoded_content = json.dumps(data).encode()
        return contents

    def test_reads_package_json(self, make_context, github):
        github.get_repo.return_value.get_contents.return_value = self._manifest(
            {"dependencies": {"octokit": "^4.0.0"}, "devDependencies": {"jest": "29.7.0"}}
        )
        deps, dev_deps = fetch_repo_dependencies(make_context())
        assert deps == {"octokit": "^4.0.0"}
        assert dev_deps == {"jest": "29.7.0"}
        github.get_repo.return_value.get_contents.assert_called_once_with("package.json")

    def test_missing_sections_are_empty(self, make_context, github):
        github.get_repo.return_value.get_contents.return_value = self._manifest({"name": "pkg"})
        assert fetch_repo_dependencies(make_context()) == ({}, {})

    def test_missing_manifest_is_empty(self, make_context, github):
        github.get_repo.return_value.get_contents.side_effect = GithubException(404, {"message": "Not Found"}, None)
        assert fetch_repo_dependencies(make_context()) == ({}, {})

    def test_unparseable_manifest_is_empty(self, make_context, github):
        contents = MagicMock()
        contents.decoded_content = b"{not json"
        github.get_repo.return_value.get_contents.return_value = contents
        assert fetch_repo_dependencies(make_context()) == ({}, {})

    def test_non_mapping_sections_are_empty(self, make_context, github):
        github.get_repo.return_value.get_contents.return_value = self._manifest(
            {"dependencies": ["octokit", "zod"], "devDependencies": "none"}
        )
        assert fetch_repo_dependencies(make_context()) == ({}, {})

    def test_valid_section_kept_beside_malformed_one(self, make_context, github):
        github.get_repo.return_value.get_contents.return_value = self._manifest(
            {"dependencies": {"octokit": "^4.0.0"}, "devDependencies": "none"}
        )
        assert fetch_repo_dependencies(make_context()) == ({"octokit": "^4.0.0"}, {})

    def test_non_object_manifest_is_empty(self, make_context, github):
        github.get_repo.return_value.get_contents.return_value = self._manifest(["not", "an", "object"])
        assert fetch_repo_dependencies(make_context()) == ({}, {})

    def test_other_api_errors_propagate(self, make_context, github):
        github.get_repo.return_value.get_contents.side_effect = GithubException(500, {"message": "boom"}, None)
        with pytest.raises(GithubException):
            fetch_repo_dependencies(make_context())


class TestFindGroundTruths:
    def test_returns_parsed_truths(self, make_context, completions):
        completions.create_ground_truth_completion.return_value = '["Must add a CLI flag", "", "Must keep tests green"]'

        truths = find_ground_truths(make_context(), "Add a --dry-run flag")

        assert truths == ["Must add a CLI flag", "Must keep tests green"]
        completions.create_ground_truth_completion.assert_called_once_with(
            "claude-3-7-sonnet-20250219", GROUND_TRUTH_SYSTEM_PROMPT, "Add a --dry-run flag"
        )

    def test_accepts_loose_output(self, make_context, completions):
        completions.create_ground_truth_completion.return_value = "```json\n['Only touch the parser',]\n```"
        assert find_ground_truths(make_context(), "spec") == ["Only touch the parser"]

    def test_empty_answer_falls_back_to_specification(self, make_context, completions):
        completions.create_ground_truth_completion.return_value = '[""]'
        truths = find_ground_truths(make_context(), "Add a --dry-run flag\n\nDetails follow.")
        assert truths == ["The pull request must implement the task: Add a --dry-run flag"]

    def test_invalid_answer_falls_back(self, make_context, completions):
        completions.create_ground_truth_completion.return_value = "no idea"
        assert find_ground_truths(make_context(), "") == ["The task has no written specification"]

    def test_object_answer_falls_back(self, make_context, completions):
        completions.create_ground_truth_completion.return_value = '{"truths": ["x"]}'
        assert len(find_ground_truths(make_context(), "Do it")) == 1
