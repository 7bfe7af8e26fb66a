"""End-to-end orchestration: pack, prompt, decode, validate, recover."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from ..config import AppConfig
from ..context.packer import ContextItem, ContextPacker, PackMeta
from ..context.prompts import build_prompt
from ..decoding.base import ProtocolDecoder
from ..decoding.factory import select_protocol_decoder
from ..errors import DecodeError, MalformedResponse, PagewiseError, SessionError
from ..intents.coerce import coerce_intent
from ..intents.schemas import DecodedResult
from ..intents.validate import validate_payload
from ..llm.session import CancellationToken, ModelProvider, ModelSession, PromptOptions
from ..logging_utils import get_logger
from .continuation import ContinuationController
from .fallback import build_fallback


@dataclass(frozen=True)
class RunOutcome:
    result: DecodedResult
    pack_meta: PackMeta
    raw_text: str


class IntentPipeline:
    """Turn untrusted model text into exactly one validated result.

    Decode failures end in the synthetic fallback. ``SessionError`` and
    ``CancellationError`` always propagate to the caller.
    """

    def __init__(
        self,
        decoder: ProtocolDecoder,
        *,
        config: AppConfig | None = None,
        packer: ContextPacker | None = None,
    ) -> None:
        self._decoder = decoder
        self._config = config or AppConfig()
        self._packer = packer or ContextPacker(self._config.context)
        self._log = get_logger("pipeline")

    @classmethod
    def for_provider(cls, config: AppConfig, provider: ModelProvider) -> "IntentPipeline":
        decoder = select_protocol_decoder(
            config.decoder, supports_structured_output=provider.supports_structured_output
        )
        return cls(decoder, config=config)

    @property
    def decoder(self) -> ProtocolDecoder:
        return self._decoder

    def interpret(self, raw_text: str, original_prompt: str = "") -> DecodedResult:
        """Decode already-collected text without a session (no continuation)."""

        try:
            outcome = self._decoder.decode(raw_text, accept=_validates)
            return self._finalize(outcome.data, recovered=outcome.attempt.recovered)
        except DecodeError as exc:
            self._log.warning("Falling back after decode failure: {}", exc)
            return build_fallback(original_prompt)

    async def interpret_async(
        self,
        raw_text: str,
        *,
        session: ModelSession | None = None,
        cancel: CancellationToken | None = None,
        original_prompt: str = "",
    ) -> DecodedResult:
        controller = None
        if (
            session is not None
            and self._decoder.supports_continuation
            and self._config.decoder.continuation_enabled
        ):
            controller = ContinuationController(self._decoder, session, cancel=cancel)
        try:
            try:
                outcome = self._decoder.decode(raw_text, accept=_validates)
            except MalformedResponse as exc:
                if controller is None:
                    raise
                outcome = await controller.recover(raw_text, exc, accept=_validates)
            return self._finalize(outcome.data, recovered=outcome.attempt.recovered)
        except DecodeError as exc:
            if cancel is not None:
                cancel.raise_if_cancelled()
            self._log.warning("Falling back after decode failure: {}", exc)
            return build_fallback(original_prompt)

    async def run(
        self,
        session: ModelSession,
        prompt: str,
        contexts: Iterable[ContextItem] = (),
        *,
        cancel: CancellationToken | None = None,
    ) -> RunOutcome:
        """Pack the request, query ``session`` and interpret the answer."""

        packed, meta = self._packer.pack(prompt, contexts)
        full_prompt = build_prompt(packed, self._decoder.format_instructions())
        schema = None
        if self._config.llm.structured_output:
            schema = self._decoder.response_constraint()
        options = PromptOptions(response_schema=schema, cancel=cancel)
        raw_text = await self._collect(session, full_prompt, options)
        if cancel is not None:
            cancel.raise_if_cancelled()
        result = await self.interpret_async(
            raw_text, session=session, cancel=cancel, original_prompt=prompt
        )
        return RunOutcome(result=result, pack_meta=meta, raw_text=raw_text)

    async def _collect(self, session: ModelSession, text: str, options: PromptOptions) -> str:
        llm = self._config.llm
        try:
            if llm.stream and len(text) > llm.single_shot_max_chars:
                parts: list[str] = []
                async for chunk in session.prompt_streaming(text, options):
                    parts.append(chunk)
                    if options.cancel is not None:
                        options.cancel.raise_if_cancelled()
                return "".join(parts)
            return await session.prompt(text, options)
        except PagewiseError:
            raise
        except Exception as exc:
            raise SessionError(f"Model session failed: {exc}") from exc

    def _finalize(self, data: dict[str, Any], *, recovered: bool) -> DecodedResult:
        payload = validate_payload(coerce_intent(data))
        if recovered:
            self._log.info("Recovered {} payload", payload.intent.value)
        return DecodedResult(payload=payload, recovered=recovered)


def _validates(data: dict[str, Any]) -> bool:
    try:
        validate_payload(coerce_intent(data))
    except DecodeError:
        return False
    return True


__all__ = ["IntentPipeline", "RunOutcome"]
