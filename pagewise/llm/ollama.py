"""Ollama integration for the model collaborator interfaces."""

from __future__ import annotations

import json
import time
from typing import Any, AsyncIterator

import httpx

from ..config import LLMConfig
from ..errors import SessionError
from ..logging_utils import get_logger
from ..resilience import RetryPolicy, is_retryable_exception, retry_async
from .session import (
    ModelAvailability,
    ModelProvider,
    ModelSession,
    PromptOptions,
    SessionOptions,
)


class OllamaProvider(ModelProvider):
    """Use a local Ollama instance through its chat API."""

    def __init__(
        self,
        base_url: str,
        model: str,
        *,
        timeout_s: float,
        retries: int,
        temperature: float = 0.2,
        structured_output: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout_s
        self._retry_policy = RetryPolicy(max_retries=retries)
        self._temperature = temperature
        self._client = client
        self._log = get_logger("llm.ollama")
        self.supports_structured_output = structured_output

    @classmethod
    def from_config(
        cls, config: LLMConfig, *, client: httpx.AsyncClient | None = None
    ) -> "OllamaProvider":
        return cls(
            config.ollama_url,
            config.ollama_model,
            timeout_s=config.timeout_s,
            retries=config.retries,
            temperature=config.temperature,
            structured_output=config.structured_output,
            client=client,
        )

    @property
    def model(self) -> str:
        return self._model

    async def availability(self) -> ModelAvailability:
        async def _request() -> dict[str, Any]:
            async with _ClientScope(self._client, self._timeout) as client:
                response = await client.get(f"{self._base_url}/api/tags")
                response.raise_for_status()
                return response.json()

        try:
            data = await retry_async(
                _request, policy=self._retry_policy, is_retryable=is_retryable_exception
            )
        except (httpx.HTTPError, ValueError) as exc:
            self._log.warning("Ollama unreachable at {}: {}", self._base_url, exc)
            return ModelAvailability.UNAVAILABLE
        names = {str(item.get("name", "")) for item in data.get("models", [])}
        if self._model in names or any(name.split(":", 1)[0] == self._model for name in names):
            return ModelAvailability.READY
        return ModelAvailability.AFTER_DOWNLOAD

    async def download(self) -> None:
        """Pull the configured model so ``availability`` reports ready."""

        self._log.info("Pulling model {} from {}", self._model, self._base_url)
        try:
            async with _ClientScope(self._client, None) as client:
                response = await client.post(
                    f"{self._base_url}/api/pull", json={"model": self._model, "stream": False}
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SessionError(f"Model download failed: {exc}") from exc

    async def ensure_ready(self, *, download: bool = False) -> ModelAvailability:
        status = await self.availability()
        if status is ModelAvailability.AFTER_DOWNLOAD and download:
            await self.download()
            status = await self.availability()
        return status

    async def create_session(self, options: SessionOptions | None = None) -> "OllamaSession":
        options = options or SessionOptions()
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(timeout=self._timeout)
        return OllamaSession(
            client,
            base_url=self._base_url,
            model=self._model,
            retry_policy=self._retry_policy,
            temperature=self._temperature if options.temperature is None else options.temperature,
            system_prompt=options.system_prompt,
            structured_output=self.supports_structured_output,
            owns_client=owns_client,
        )


class OllamaSession(ModelSession):
    """Chat session that keeps its own message history."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str,
        model: str,
        retry_policy: RetryPolicy,
        temperature: float,
        system_prompt: str | None = None,
        structured_output: bool = True,
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._base_url = base_url
        self._model = model
        self._retry_policy = retry_policy
        self._temperature = temperature
        self._structured_output = structured_output
        self._owns_client = owns_client
        self._destroyed = False
        self._log = get_logger("llm.ollama.session")
        self._messages: list[dict[str, str]] = []
        if system_prompt:
            self._messages.append({"role": "system", "content": system_prompt})

    @property
    def messages(self) -> list[dict[str, str]]:
        return list(self._messages)

    async def prompt(self, text: str, options: PromptOptions | None = None) -> str:
        options = options or PromptOptions()
        self._check_open(options)
        payload = self._payload(text, options, stream=False)
        start = time.monotonic()

        async def _request() -> dict[str, Any]:
            response = await self._client.post(f"{self._base_url}/api/chat", json=payload)
            response.raise_for_status()
            return response.json()

        try:
            data = await retry_async(
                _request, policy=self._retry_policy, is_retryable=is_retryable_exception
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise SessionError(f"Ollama chat request failed: {exc}") from exc
        if "error" in data:
            raise SessionError(f"Ollama returned an error: {data['error']}")
        content = str(data.get("message", {}).get("content", ""))
        self._remember(text, content)
        _log_response(self._log, data, content, start)
        return content

    async def prompt_streaming(
        self, text: str, options: PromptOptions | None = None
    ) -> AsyncIterator[str]:
        options = options or PromptOptions()
        self._check_open(options)
        payload = self._payload(text, options, stream=True)
        parts: list[str] = []
        start = time.monotonic()
        last: dict[str, Any] = {}
        try:
            async with self._client.stream(
                "POST", f"{self._base_url}/api/chat", json=payload
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    last = json.loads(line)
                    if "error" in last:
                        raise SessionError(f"Ollama returned an error: {last['error']}")
                    chunk = str(last.get("message", {}).get("content", ""))
                    if chunk:
                        parts.append(chunk)
                        yield chunk
                    if options.cancel is not None:
                        options.cancel.raise_if_cancelled()
                    if last.get("done"):
                        break
        except (httpx.HTTPError, ValueError) as exc:
            raise SessionError(f"Ollama stream failed: {exc}") from exc
        content = "".join(parts)
        self._remember(text, content)
        _log_response(self._log, last, content, start)

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._messages.clear()
        if self._owns_client:
            await self._client.aclose()

    def _check_open(self, options: PromptOptions) -> None:
        if self._destroyed:
            raise SessionError("Session has been destroyed.")
        if options.cancel is not None:
            options.cancel.raise_if_cancelled()

    def _payload(self, text: str, options: PromptOptions, *, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [*self._messages, {"role": "user", "content": text}],
            "stream": stream,
            "options": {"temperature": self._temperature},
        }
        if self._structured_output and options.response_schema:
            payload["format"] = options.response_schema
        return payload

    def _remember(self, text: str, content: str) -> None:
        self._messages.append({"role": "user", "content": text})
        self._messages.append({"role": "assistant", "content": content})


class _ClientScope:
    """Use the shared client when there is one, otherwise a short-lived client."""

    def __init__(self, client: httpx.AsyncClient | None, timeout: float | None) -> None:
        self._shared = client
        self._timeout = timeout
        self._owned: httpx.AsyncClient | None = None

    async def __aenter__(self) -> httpx.AsyncClient:
        if self._shared is not None:
            return self._shared
        self._owned = httpx.AsyncClient(timeout=self._timeout)
        return self._owned

    async def __aexit__(self, *exc_info: object) -> None:
        if self._owned is not None:
            await self._owned.aclose()


def _log_response(log, data: dict[str, Any], content: str, start: float) -> None:
    payload = {
        "event": "ollama.response",
        "done_reason": data.get("done_reason"),
        "prompt_eval_count": data.get("prompt_eval_count"),
        "eval_count": data.get("eval_count"),
        "response_chars": len(content),
        "latency_ms": round((time.monotonic() - start) * 1000, 1),
    }
    log.debug(json.dumps(payload))
    if data.get("done_reason") == "length":
        log.info("Ollama stopped at the length limit; answer is likely truncated")
