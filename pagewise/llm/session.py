"""Model collaborator interfaces: providers, sessions and cancellation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator

from ..errors import CancellationError


class ModelAvailability(str, Enum):
    READY = "ready"
    AFTER_DOWNLOAD = "after-download"
    UNAVAILABLE = "unavailable"


class CancellationToken:
    """Cooperative abort flag shared between a caller and one model call."""

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "Request cancelled by caller.") -> None:
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CancellationError(self.reason or "Request cancelled by caller.")


@dataclass(frozen=True)
class PromptOptions:
    response_schema: dict[str, Any] | None = None
    cancel: CancellationToken | None = None


@dataclass(frozen=True)
class SessionOptions:
    system_prompt: str | None = None
    temperature: float | None = None


class ModelSession(ABC):
    """One conversation with a model. Owned by the caller."""

    @abstractmethod
    async def prompt(self, text: str, options: PromptOptions | None = None) -> str:
        """Return the complete answer for ``text``."""

    @abstractmethod
    def prompt_streaming(
        self, text: str, options: PromptOptions | None = None
    ) -> AsyncIterator[str]:
        """Yield the answer for ``text`` chunk by chunk."""

    @abstractmethod
    async def destroy(self) -> None:
        """Release the session; later calls raise ``SessionError``."""


class ModelProvider(ABC):
    """Base interface for model integrations."""

    supports_structured_output: bool = False

    @abstractmethod
    async def availability(self) -> ModelAvailability:
        """Report whether the model can answer now, after a download, or not at all."""

    @abstractmethod
    async def create_session(self, options: SessionOptions | None = None) -> ModelSession:
        """Open a new session."""
