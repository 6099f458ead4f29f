from __future__ import annotations

from precheck_core.models import TokenUsage
from precheck_core.providers.base import BaseCompletions


class AnthropicCompletions(BaseCompletions):
    # Slightly above the OpenAI setting: review comments read more naturally
    # while the JSON envelope stays stable.
    TEMPERATURE = 0.3

    def __init__(self, api_key: str):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install anthropic"
            )
        self.client = Anthropic(api_key=api_key)

    def _call_api(self, model: str, system_prompt: str, user_prompt: str, max_tokens: int) -> tuple[str, TokenUsage]:
        # __init__ already validated the package is installed.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=max_tokens,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        usage = TokenUsage(
            input=response.usage.input_tokens,
            output=response.usage.output_tokens,
            total=response.usage.input_tokens + response.usage.output_tokens,
        )
        return "".join(text_blocks).strip(), usage
