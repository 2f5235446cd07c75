"""
Shared LLM helpers.

This module centralizes the OpenAI-compatible chat completion call: request
parameters per model, the retried API call itself, and extraction of the
reply text. The completion service is optional for this application, so
callers check ``settings.FALLBACK_CONFIGURED`` before using the mixin.
"""

from __future__ import annotations

import openai

from .utils import retry

RETRYABLE_OPENAI_EXCEPTIONS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)

# Errors that no other model or retry will fix.
FATAL_OPENAI_EXCEPTIONS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
)

# Reasoning models reject a custom temperature.
_NO_TEMPERATURE_PREFIXES = ("gpt-5", "o1", "o3", "o4")


def supports_temperature(model: str) -> bool:
    return not model.lower().startswith(_NO_TEMPERATURE_PREFIXES)


class OpenAIChatMixin:
    """
    Mixin providing a retried OpenAI-compatible chat completion call.

    The mixin expects ``self.settings`` to expose ``MAX_RETRIES``,
    ``MAX_RETRY_BACKOFF_SECONDS``, ``REQUEST_TIMEOUT`` and
    ``CLASSIFY_MAX_TOKENS``.
    """

    def _completion_params(
        self,
        model: str,
        messages: list[dict],
        *,
        temperature: float = 0.3,
    ) -> dict:
        """Build the keyword arguments for one completion request."""
        params = {
            "model": model,
            "messages": messages,
            "timeout": self.settings.REQUEST_TIMEOUT,
        }
        if supports_temperature(model):
            params["temperature"] = temperature
        if self.settings.CLASSIFY_MAX_TOKENS:
            params["max_tokens"] = self.settings.CLASSIFY_MAX_TOKENS
        return params

    @retry(retryable_exceptions=RETRYABLE_OPENAI_EXCEPTIONS)
    def _create_completion(self, **kwargs):
        """Call the OpenAI-compatible chat completion API with retries."""
        return openai.chat.completions.create(**kwargs)

    @staticmethod
    def _completion_text(response) -> str:
        """Return the text of the first choice, or an empty string."""
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        return choices[0].message.content or ""
