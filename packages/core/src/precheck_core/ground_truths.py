"""Ground truths: factual statements handed to the model as grounding context.

Two sources are used, never both in one review:
  - repository signals (languages and package.json dependencies), which only
    produce facts about what is *missing*;
  - the task specification, from which the completion client derives
    constraints the pull request has to satisfy.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from github import GithubException

from precheck_core.utils.loose_json import LooseJsonError, parse_loose_json

if TYPE_CHECKING:
    from precheck_core.models import ReviewContext

logger = logging.getLogger(__name__)

NO_LANGUAGES = "No languages found in the repository"
NO_DEPENDENCIES = "No dependencies found in the repository"
NO_DEV_DEPENDENCIES = "No devDependencies found in the repository"

_MANIFEST_PATH = "package.json"

GROUND_TRUTH_SYSTEM_PROMPT = """You extract ground truths from a software task specification.
A ground truth is a short, verifiable statement about what the finished work must do or must not do.

Rules:
- Only state facts that follow directly from the specification.
- One requirement per entry. Keep each entry under 25 words.
- Return at most 10 entries.

Respond with **only** a JSON array of strings, for example:
["The endpoint must return 404 for unknown ids", "No new dependencies may be added"]"""


def collect_ground_truths(
    languages: list[tuple[str, int]],
    dependencies: dict[str, str] | None,
    dev_dependencies: dict[str, str] | None,
) -> list[str]:
    """Return one fact per empty repository signal, in a fixed order.

    A mapping that is None means the signal is unknown rather than empty and
    produces no fact.
    """
    facts: list[str] = []
    if not languages:
        facts.append(NO_LANGUAGES)
    if dependencies is not None and not dependencies:
        facts.append(NO_DEPENDENCIES)
    if dev_dependencies is not None and not dev_dependencies:
        facts.append(NO_DEV_DEPENDENCIES)
    return facts


def fetch_repo_language_stats(context: ReviewContext) -> list[tuple[str, int]]:
    """Return (language, bytes) pairs for the repository, largest first."""
    repo = context.github.get_repo(context.owner, context.repo)
    languages = repo.get_languages() or {}
    return sorted(languages.items(), key=lambda item: item[1], reverse=True)


def fetch_repo_dependencies(context: ReviewContext) -> tuple[dict[str, str], dict[str, str]]:
    """Return (dependencies, devDependencies) declared in the repository's package.json.

    A repository without a manifest simply has no dependencies, so a 404 is
    reported as two empty mappings. Any other API failure propagates.
    """
    repo = context.github.get_repo(context.owner, context.repo)
    try:
        contents = repo.get_contents(_MANIFEST_PATH)
    except GithubException as e:
        if e.status == 404:
            logger.info("No %s found in %s/%s", _MANIFEST_PATH, context.owner, context.repo)
            return {}, {}
        raise

    try:
        manifest = json.loads(contents.decoded_content.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        logger.warning("Could not parse %s in %s/%s: %s", _MANIFEST_PATH, context.owner, context.repo, e)
        return {}, {}
    if not isinstance(manifest, dict):
        logger.warning("%s in %s/%s is not a JSON object", _MANIFEST_PATH, context.owner, context.repo)
        return {}, {}

    return _manifest_section(context, manifest, "dependencies"), _manifest_section(context, manifest, "devDependencies")


def _manifest_section(context: ReviewContext, manifest: dict, key: str) -> dict[str, str]:
    section = manifest.get(key) or {}
    if not isinstance(section, dict):
        logger.warning(
            "Ignoring %s in %s/%s: expected an object, got %s",
            key,
            context.owner,
            context.repo,
            type(section).__name__,
        )
        return {}
    return dict(section)


def find_ground_truths(context: ReviewContext, task_specification: str) -> list[str]:
    """Derive ground truths from the task specification via the completion client.

    The result is never empty: when the model returns nothing usable, the
    specification itself is turned into a single fact.
    """
    raw = context.completions.create_ground_truth_completion(
        context.model,
        GROUND_TRUTH_SYSTEM_PROMPT,
        task_specification,
    )

    truths: list[str] = []
    try:
        parsed = parse_loose_json(raw)
    except LooseJsonError as e:
        logger.warning("Ground truth completion was not valid JSON: %s", e)
        parsed = []

    if isinstance(parsed, list):
        truths = [str(item).strip() for item in parsed if isinstance(item, (str, int, float)) and str(item).strip()]

    if not truths:
        spec = task_specification.strip()
        if spec:
            truths = [f"The pull request must implement the task: {spec.splitlines()[0]}"]
        else:
            truths = ["The task has no written specification"]
        logger.info("No ground truths derived from the specification, using fallback")

    return truths
