from __future__ import annotations

import sys
from pathlib import Path
from typing import AsyncIterator, Callable, Iterable

import pytest
from loguru import logger

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pagewise.llm.session import (  # noqa: E402
    ModelAvailability,
    ModelProvider,
    ModelSession,
    PromptOptions,
    SessionOptions,
)


class FakeSession(ModelSession):
    def __init__(
        self,
        replies: Iterable[str] = (),
        *,
        chunks: Iterable[str] = (),
        error: Exception | None = None,
        on_chunk: Callable[[str], None] | None = None,
    ) -> None:
        self.replies = list(replies)
        self.chunks = list(chunks)
        self.error = error
        self.on_chunk = on_chunk
        self.prompts: list[str] = []
        self.options: list[PromptOptions | None] = []
        self.streamed = False
        self.destroyed = False

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def prompt(self, text: str, options: PromptOptions | None = None) -> str:
        self.prompts.append(text)
        self.options.append(options)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""

    async def prompt_streaming(
        self, text: str, options: PromptOptions | None = None
    ) -> AsyncIterator[str]:
        self.prompts.append(text)
        self.options.append(options)
        self.streamed = True
        if self.error is not None:
            raise self.error
        for chunk in self.chunks:
            yield chunk
            if self.on_chunk is not None:
                self.on_chunk(chunk)

    async def destroy(self) -> None:
        self.destroyed = True


class FakeProvider(ModelProvider):
    def __init__(self, *, structured: bool, session: FakeSession | None = None) -> None:
        self.supports_structured_output = structured
        self.session = session or FakeSession()

    async def availability(self) -> ModelAvailability:
        return ModelAvailability.READY

    async def create_session(self, options: SessionOptions | None = None) -> FakeSession:
        return self.session


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger.remove()


@pytest.fixture
def session_factory():
    def _factory(*replies: str, **kwargs) -> FakeSession:
        return FakeSession(replies, **kwargs)

    return _factory


@pytest.fixture
def provider_factory():
    def _factory(*, structured: bool, session: FakeSession | None = None) -> FakeProvider:
        return FakeProvider(structured=structured, session=session)

    return _factory
