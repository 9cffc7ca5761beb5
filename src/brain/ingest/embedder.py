"""Embedding collaborator backed by LiteLLM.

All embedding calls route through ``LiteLLMEmbedder.embed``. LiteLLM's built-in
retry is used (``num_retries``); each call is bounded by ``timeout`` seconds.
Failures surface as TokenizeError (bad input) or ModelError (provider / model).
"""

from __future__ import annotations

import os
from typing import Protocol

import litellm

from brain.errors import ModelError, TokenizeError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "ollama": None,  # Local, no key required
    "huggingface": None,
}


class Embedder(Protocol):
    """Deterministic text → fixed-length vector."""

    dimensions: int

    def embed(self, text: str) -> list[float]: ...


def validate_api_key(model: str) -> None:
    """Raise ModelError if the API key env var required by *model* is missing."""
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider)
    if env_var is None:
        return
    if not os.getenv(env_var):
        raise ModelError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


class LiteLLMEmbedder:
    """Embed text with ``litellm.embedding()``.

    Args:
        model: LiteLLM model string in 'provider/model' format.
        dimensions: Expected vector length; other lengths raise ModelError.
        timeout: Seconds allowed per embedding call.
        num_retries: Retries on transient provider errors.
    """

    def __init__(
        self,
        model: str = "openai/text-embedding-3-small",
        dimensions: int = 1536,
        *,
        timeout: float = 60.0,
        num_retries: int = 3,
    ) -> None:
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout
        self.num_retries = num_retries
        self._key_checked = False

    def embed(self, text: str) -> list[float]:
        if not text.strip():
            raise TokenizeError("cannot embed blank text")
        if not self._key_checked:
            validate_api_key(self.model)
            self._key_checked = True

        try:
            response = litellm.embedding(
                model=self.model,
                input=[text],
                timeout=self.timeout,
                num_retries=self.num_retries,
            )
        except litellm.exceptions.ContextWindowExceededError as exc:
            raise TokenizeError(f"text exceeds the context window of {self.model}") from exc
        except Exception as exc:
            raise ModelError(f"{self.model}: {exc}") from exc

        try:
            vector = [float(v) for v in response.data[0]["embedding"]]
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            raise ModelError(f"{self.model}: malformed embedding response") from exc

        if len(vector) != self.dimensions:
            raise ModelError(
                f"{self.model} returned {len(vector)} dimensions, expected {self.dimensions}"
            )
        return vector
