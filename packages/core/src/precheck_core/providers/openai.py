from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from precheck_core.models import TokenUsage
from precheck_core.providers.base import BaseCompletions


class OpenAICompletions(BaseCompletions):
    TEMPERATURE = 0.2

    def __init__(self, api_key: str):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. "
                "Install it with: pip install 'pull-precheck[openai]'"
            )
        self.client = _OpenAI(api_key=api_key)

    def _call_api(self, model: str, system_prompt: str, user_prompt: str, max_tokens: int) -> tuple[str, TokenUsage]:
        response = self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.TEMPERATURE,
            max_tokens=max_tokens,
        )
        usage = TokenUsage()
        if response.usage is not None:
            usage = TokenUsage(
                input=response.usage.prompt_tokens,
                output=response.usage.completion_tokens,
                total=response.usage.total_tokens,
            )
        return response.choices[0].message.content or "", usage
