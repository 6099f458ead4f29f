from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from precheck_core.models import ReviewContext

logger = logging.getLogger(__name__)

# Generated or binary content adds tokens without adding reviewable signal.
NON_CODE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".webp",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".mp4",
    ".zip",
    ".gz",
    ".lock",
    ".lockb",  # bun.lockb
}

NON_CODE_FILENAMES = {"package-lock.json", "pnpm-lock.yaml", "yarn.lock", "bun.lockb"}


@dataclass
class PullRequestDiff:
    diff: str
    files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    truncated: bool = False


def is_reviewable_file(filename: str, exclude: list[str]) -> bool:
    basename = filename.rsplit("/", 1)[-1]
    if basename in NON_CODE_FILENAMES:
        return False
    if any(basename.lower().endswith(ext) for ext in NON_CODE_EXTENSIONS):
        return False
    return not _is_excluded(filename, exclude)


def _is_excluded(filename: str, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports full-path globs ("dist/*.js"), basename globs ("*.min.js") and
    directory prefixes ("generated/", "fixtures").
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False


def fetch_pull_request_diff(context: ReviewContext) -> PullRequestDiff:
    """Assemble a unified diff of the reviewable files in the pull request."""
    pr = context.github.get_pull(context.owner, context.repo, context.pull_request.number)
    exclude = list(context.config.get("exclude", []))
    max_chars = context.config.get("max_diff_chars", 60000)

    sections: list[str] = []
    result = PullRequestDiff(diff="")
    for f in sorted(pr.get_files(), key=lambda f: f.filename):
        if not f.patch or not is_reviewable_file(f.filename, exclude):
            result.skipped_files.append(f.filename)
            continue
        old_name = getattr(f, "previous_filename", None) or f.filename
        sections.append(f"diff --git a/{old_name} b/{f.filename}\n{f.patch}")
        result.files.append(f.filename)

    diff = "\n".join(sections)
    if len(diff) > max_chars:
        diff = diff[:max_chars] + "\n... [diff truncated]"
        result.truncated = True
        logger.warning("Diff for PR #%d truncated to %d characters", context.pull_request.number, max_chars)

    if result.skipped_files:
        logger.debug("Skipped %d file(s) from the diff: %s", len(result.skipped_files), result.skipped_files)
    result.diff = diff
    return result
