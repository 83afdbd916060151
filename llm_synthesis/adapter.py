"""LLM adapters used by the anomaly explainer.

Provides a base interface, an OpenAI-compatible adapter and a
deterministic mock for tests and offline runs.
"""

import json
import os
from abc import ABC, abstractmethod
from typing import Optional


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Send a prompt to the LLM and return the raw response text."""


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Configured for deterministic, non-streaming JSON output.  The client
    is created with an explicit request timeout so a slow provider cannot
    stall the anomaly run.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 600,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        try:
            from openai import OpenAI  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "openai package is required for OpenAILLMAdapter. "
                "Install it with: pip install openai"
            ) from exc

        resolved_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        client_kwargs: dict = {"api_key": resolved_key, "timeout": timeout_seconds}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens

    def generate(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {
                    "role": "system",
                    "content": "You are an expert system reliability engineer. Respond with JSON only.",
                },
                {"role": "user", "content": prompt},
            ],
            temperature=0.3,
            max_tokens=self._max_tokens,
            response_format={"type": "json_object"},
            stream=False,
        )
        return response.choices[0].message.content or ""


# ---------------------------------------------------------------------------
# Fixed mock response used for local testing.
# ---------------------------------------------------------------------------
_MOCK_RESPONSE = {
    "summary": "Mock explanation for testing purposes.",
    "root_cause": "Synthetic anomaly raised by a test fixture.",
    "actions": ["Verify the detector wiring", "Re-run the detection window"],
    "business_impact": "Low",
}

_MOCK_RESPONSE_JSON = json.dumps(_MOCK_RESPONSE, indent=2)


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a fixed valid explanation."""

    def generate(self, prompt: str) -> str:
        return _MOCK_RESPONSE_JSON


def build_llm_adapter(
    name: str,
    *,
    model: str = "gpt-4o-mini",
    max_tokens: int = 600,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
) -> BaseLLMAdapter:
    """Return the adapter registered under *name* ("openai" or "mock")."""
    normalized = (name or "").strip().lower()
    if normalized == "mock":
        return MockLLMAdapter()
    if normalized == "openai":
        return OpenAILLMAdapter(
            model=model,
            max_tokens=max_tokens,
            api_key=api_key,
            base_url=base_url,
        )
    raise ValueError(f"Unknown LLM adapter {name!r}; expected 'openai' or 'mock'.")
