"""Model collaborator interfaces and integrations."""

from __future__ import annotations

import httpx

from ..config import LLMConfig
from .ollama import OllamaProvider, OllamaSession
from .session import (
    CancellationToken,
    ModelAvailability,
    ModelProvider,
    ModelSession,
    PromptOptions,
    SessionOptions,
)


def build_provider(config: LLMConfig, *, client: httpx.AsyncClient | None = None) -> ModelProvider:
    if config.provider == "ollama":
        return OllamaProvider.from_config(config, client=client)
    raise ValueError(f"Unsupported LLM provider: {config.provider}")


__all__ = [
    "CancellationToken",
    "ModelAvailability",
    "ModelProvider",
    "ModelSession",
    "OllamaProvider",
    "OllamaSession",
    "PromptOptions",
    "SessionOptions",
    "build_provider",
]
