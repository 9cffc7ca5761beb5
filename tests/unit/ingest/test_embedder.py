"""Tests for the LiteLLM-backed embedder."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import litellm
import pytest

from brain.errors import EmbeddingError, ModelError, TokenizeError
from brain.ingest.embedder import LiteLLMEmbedder, validate_api_key


class _TooLong(litellm.exceptions.ContextWindowExceededError):
    def __init__(self) -> None:
        Exception.__init__(self, "context window exceeded")


def _response(vector: list[float]) -> MagicMock:
    resp = MagicMock()
    resp.data = [{"embedding": vector}]
    return resp


@pytest.fixture(autouse=True)
def _api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")


# ------------------------------------------------------------------
# validate_api_key
# ------------------------------------------------------------------


def test_validate_api_key_raises_if_missing(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ModelError, match="OPENAI_API_KEY"):
        validate_api_key("openai/text-embedding-3-small")


def test_validate_api_key_bare_model_treated_as_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ModelError):
        validate_api_key("text-embedding-3-small")


def test_validate_api_key_ollama_no_key_required():
    validate_api_key("ollama/nomic-embed-text")


# ------------------------------------------------------------------
# embed()
# ------------------------------------------------------------------


def test_embed_returns_vector():
    embedder = LiteLLMEmbedder("openai/text-embedding-3-small", dimensions=3)
    with patch("brain.ingest.embedder.litellm.embedding", return_value=_response([0.1, 0.2, 0.3])):
        assert embedder.embed("hello") == [0.1, 0.2, 0.3]


def test_embed_passes_params_to_litellm():
    embedder = LiteLLMEmbedder("openai/m", dimensions=2, timeout=12.0, num_retries=5)
    with patch(
        "brain.ingest.embedder.litellm.embedding", return_value=_response([1.0, 2.0])
    ) as mock_embed:
        embedder.embed("text")
    kwargs = mock_embed.call_args.kwargs
    assert kwargs["model"] == "openai/m"
    assert kwargs["input"] == ["text"]
    assert kwargs["timeout"] == 12.0
    assert kwargs["num_retries"] == 5


def test_embed_blank_text_is_tokenize_error():
    embedder = LiteLLMEmbedder(dimensions=3)
    with patch("brain.ingest.embedder.litellm.embedding") as mock_embed:
        with pytest.raises(TokenizeError):
            embedder.embed("   \n")
    mock_embed.assert_not_called()


def test_embed_context_window_is_tokenize_error():
    embedder = LiteLLMEmbedder(dimensions=3)
    with patch("brain.ingest.embedder.litellm.embedding", side_effect=_TooLong()):
        with pytest.raises(TokenizeError):
            embedder.embed("very long text")


def test_embed_provider_failure_is_model_error():
    embedder = LiteLLMEmbedder(dimensions=3)
    with patch("brain.ingest.embedder.litellm.embedding", side_effect=RuntimeError("503")):
        with pytest.raises(ModelError, match="503"):
            embedder.embed("text")


def test_embed_wrong_dimensions_is_model_error():
    embedder = LiteLLMEmbedder(dimensions=3)
    with patch("brain.ingest.embedder.litellm.embedding", return_value=_response([0.1, 0.2])):
        with pytest.raises(ModelError, match="2 dimensions"):
            embedder.embed("text")


def test_embed_malformed_response_is_model_error():
    embedder = LiteLLMEmbedder(dimensions=3)
    resp = MagicMock()
    resp.data = []
    with patch("brain.ingest.embedder.litellm.embedding", return_value=resp):
        with pytest.raises(ModelError, match="malformed"):
            embedder.embed("text")


def test_embed_missing_key_raises_before_call(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    embedder = LiteLLMEmbedder(dimensions=3)
    with patch("brain.ingest.embedder.litellm.embedding") as mock_embed:
        with pytest.raises(EmbeddingError):
            embedder.embed("text")
    mock_embed.assert_not_called()


def test_embed_deterministic_for_same_response():
    embedder = LiteLLMEmbedder(dimensions=2)
    with patch("brain.ingest.embedder.litellm.embedding", return_value=_response([0.5, 0.25])):
        assert embedder.embed("a") == embedder.embed("a")
