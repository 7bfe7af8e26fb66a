"""Configuration loading and validation using Pydantic models."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator


class DecoderConfig(BaseModel):
    protocol: Literal["auto", "json", "text"] = Field(
        "auto",
        description="Response protocol; auto picks json when the provider supports "
        "structured output and text otherwise.",
    )
    max_candidates: int = Field(10, ge=1, le=100)
    continuation_enabled: bool = Field(
        True, description="Request one continuation when JSON output looks truncated."
    )


class ContextConfig(BaseModel):
    selection_max_chars: int = Field(3000, ge=100)
    tab_max_chars: int = Field(5000, ge=100)
    budget_chars: int = Field(12000, ge=100)
    sentence_window: float = Field(
        0.3,
        ge=0.0,
        le=1.0,
        description="Fraction at the end of a truncation window searched for a sentence end.",
    )

    @model_validator(mode="after")
    def _check_budget(self) -> "ContextConfig":
        if self.budget_chars < self.selection_max_chars:
            raise ValueError("budget_chars must be at least selection_max_chars")
        return self


class LLMConfig(BaseModel):
    provider: Literal["ollama"] = Field("ollama", description="Model integration to use.")
    ollama_url: str = Field("http://127.0.0.1:11434")
    ollama_model: str = Field("llama3.2")
    timeout_s: float = Field(60.0, gt=0)
    retries: int = Field(2, ge=0)
    temperature: float = Field(0.2, ge=0.0, le=2.0)
    structured_output: bool = Field(
        True, description="Send the JSON schema as a response constraint when supported."
    )
    stream: bool = Field(True, description="Consume long answers as a stream of chunks.")
    single_shot_max_chars: int = Field(
        2000,
        ge=0,
        description="Prompts at or below this size use a single non-streaming call.",
    )


class HistoryConfig(BaseModel):
    url: str = Field("sqlite:///./pagewise.db", description="SQLAlchemy URL for history.")
    echo: bool = False


class LoggingConfig(BaseModel):
    level: str = Field("INFO")
    log_dir: Optional[Path] = None


class AppConfig(BaseModel):
    decoder: DecoderConfig = DecoderConfig()
    context: ContextConfig = ContextConfig()
    llm: LLMConfig = LLMConfig()
    history: HistoryConfig = HistoryConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(path: Path | str) -> AppConfig:
    """Load YAML configuration from disk."""

    config_path = Path(path)
    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    return AppConfig.model_validate(data)
