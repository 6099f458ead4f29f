"""Base completion client implementing the Template Method pattern.

All providers share the same algorithm:
    create_completion() → _build_system_prompt() + _build_user_prompt()
                        → _call_api()   ← only this differs per provider
                        → CompletionResult

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text and token usage

Each call is made exactly once. A failure is wrapped in CompletionError and
aborts the review; there is no retry.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from precheck_core.errors import CompletionError
from precheck_core.models import CompletionResult, TokenUsage

logger = logging.getLogger(__name__)

# (max input tokens, max output tokens) per model.
MODEL_TOKEN_LIMITS: dict[str, tuple[int, int]] = {
    "claude-3-5-haiku-20241022": (200_000, 8_192),
    "claude-3-5-sonnet-20241022": (200_000, 8_192),
    "claude-3-7-sonnet-20250219": (200_000, 64_000),
    "claude-sonnet-4-20250514": (200_000, 64_000),
    "claude-opus-4-20250514": (200_000, 32_000),
    "gpt-4o": (128_000, 16_384),
    "gpt-4o-mini": (128_000, 16_384),
    "gpt-4.1": (1_047_576, 32_768),
}
DEFAULT_TOKEN_LIMITS = (128_000, 4_096)

# Rough conversion used to keep the prompt inside the input budget.
_CHARS_PER_TOKEN = 4


class BaseCompletions(ABC):
    # Upper bound on tokens requested per response, whatever the model allows.
    MAX_TOKENS: int = 8_192
    TEMPERATURE: float = 0.2

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def create_completion(
        self,
        model: str,
        formatted_spec_and_pull: str,
        ground_truths: list[str],
        app_name: str,
        max_tokens: int,
    ) -> CompletionResult:
        """Ask the model for a review verdict on the formatted task and diff."""
        system = self._build_system_prompt(app_name, ground_truths)
        user = self._build_user_prompt(formatted_spec_and_pull, self._prompt_budget(model, max_tokens, system))
        answer, usage = self._call(model, system, user)
        logger.info(
            "Review completion used %d input / %d output tokens",
            usage.input,
            usage.output,
        )
        return CompletionResult(answer=answer, ground_truths=list(ground_truths), token_usage=usage)

    def create_ground_truth_completion(self, model: str, system_prompt: str, task_specification: str) -> str:
        """Ask the model to extract ground truths from a task specification."""
        answer, _ = self._call(model, system_prompt, task_specification)
        return answer

    def get_model_max_token_limit(self, model: str) -> int:
        return MODEL_TOKEN_LIMITS.get(model, DEFAULT_TOKEN_LIMITS)[0]

    def get_model_max_output_limit(self, model: str) -> int:
        return MODEL_TOKEN_LIMITS.get(model, DEFAULT_TOKEN_LIMITS)[1]

    # ------------------------------------------------------------------ #
    # Abstract, implemented by each provider                              #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, model: str, system_prompt: str, user_prompt: str, max_tokens: int) -> tuple[str, TokenUsage]:
        """Make a single API call and return the raw text response and its usage.

        This is the only method subclasses must implement. It should raise
        on failure.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call(self, model: str, system_prompt: str, user_prompt: str) -> tuple[str, TokenUsage]:
        max_output = min(self.MAX_TOKENS, self.get_model_max_output_limit(model))
        try:
            return self._call_api(model, system_prompt, user_prompt, max_output)
        except Exception as e:
            logger.error("%s API call failed for model %s: %s", self.__class__.__name__, model, e)
            raise CompletionError(
                f"{self.__class__.__name__} completion failed: {e}",
                details={"model": model, "error": repr(e)},
            ) from e

    def _prompt_budget(self, model: str, max_tokens: int, system_prompt: str) -> int:
        """Characters of user prompt that fit next to the system prompt and the response."""
        reserved = min(self.MAX_TOKENS, self.get_model_max_output_limit(model))
        return max(0, (max_tokens - reserved) * _CHARS_PER_TOKEN - len(system_prompt))

    def _build_system_prompt(self, app_name: str, ground_truths: list[str]) -> str:
        truths = "\n".join(f"- {t}" for t in ground_truths)
        return f"""You are {app_name}, a strict and precise senior code reviewer.
You decide whether a pull request fully implements the task specification it is linked to.

Ground truths about this repository and task:
{truths}

Rules:
- Judge the diff against the specification and the ground truths, nothing else.
- Point out missing requirements, incorrect behaviour and obvious bugs.
- Do not comment on style that does not affect correctness.
- Avoid assumptions when context is unclear. Be concise and actionable."""

    def _build_user_prompt(self, formatted_spec_and_pull: str, budget_chars: int) -> str:
        if len(formatted_spec_and_pull) > budget_chars:
            logger.warning(
                "Review context truncated from %d to %d characters", len(formatted_spec_and_pull), budget_chars
            )
            formatted_spec_and_pull = formatted_spec_and_pull[:budget_chars] + "\n... [context truncated]"
        return f"""{formatted_spec_and_pull}

### Output Format:
Respond with **only** a valid JSON object:

{{
  "confidenceThreshold": <number between 0 and 1; how confident you are that the pull request completes the task>,
  "reviewComment": "<review for the author in GitHub-flavored markdown>"
}}

Do not return any text outside the JSON object."""
