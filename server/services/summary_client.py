"""
AI Summary Client using LiteLLM

Short natural-language summaries of the composed slates. Any LiteLLM model id
works ("gpt-4o-mini", "gemini/gemini-2.5-flash", "claude-sonnet-4-5", ...);
the provider API key is read from the environment by LiteLLM.

Usage:
    summarizer = LiteLLMSummaryGenerator(model="gpt-4o-mini")
    text = await summarizer.summarize(prompt)
"""

from typing import Optional

import litellm
from litellm import acompletion

from recommender.errors import BackendUnavailableError

# Suppress LiteLLM's verbose logging
litellm.suppress_debug_info = True

# Drop unsupported params for models with restrictions
litellm.drop_params = True

MAX_SUMMARY_TOKENS = 120


class LiteLLMSummaryGenerator:
    """SummaryGenerator over litellm.acompletion."""

    def __init__(self, model: str, temperature: float = 0.7, timeout: float = 10.0):
        self.model = model
        self.temperature = temperature
        self.timeout = timeout

    async def summarize(self, prompt: str) -> str:
        """
        Returns:
            The model's reply, stripped. Empty when the model returned no content.

        Raises:
            BackendUnavailableError: If the LLM API call fails
        """
        try:
            response = await acompletion(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=MAX_SUMMARY_TOKENS,
                timeout=self.timeout,
            )
        except Exception as e:
            raise BackendUnavailableError("llm", str(e) or type(e).__name__) from e
        content: Optional[str] = response.choices[0].message.content
        return (content or "").strip()
