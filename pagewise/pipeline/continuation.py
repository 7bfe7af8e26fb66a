"""One-shot continuation for JSON answers cut off mid-stream."""

from __future__ import annotations

from ..context.prompts import continuation_prompt
from ..decoding.base import (
    CONTINUATION,
    FAST_PATH,
    AcceptFn,
    DecodeOutcome,
    ProtocolDecoder,
    RecoveryAttempt,
)
from ..errors import MalformedResponse, PagewiseError, SessionError
from ..llm.session import CancellationToken, ModelSession, PromptOptions
from ..logging_utils import get_logger

_STRUCTURED_STARTS = ("```", "~~~", "{")


def merge_continuation(raw_text: str, continuation: str) -> str:
    """Join a continuation onto the truncated answer.

    A continuation that opens a new fence or object is kept as a separate
    block; anything else is taken as the literal tail of the cut-off value.
    """

    if continuation.lstrip().startswith(_STRUCTURED_STARTS):
        return f"{raw_text}\n{continuation}"
    return raw_text + continuation


class ContinuationController:
    """Issues at most one continuation request for the lifetime of a request."""

    def __init__(
        self,
        decoder: ProtocolDecoder,
        session: ModelSession,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        self._decoder = decoder
        self._session = session
        self._cancel = cancel
        self._log = get_logger("pipeline.continuation")
        self.attempted = False

    async def recover(
        self,
        raw_text: str,
        error: MalformedResponse,
        *,
        accept: AcceptFn | None = None,
    ) -> DecodeOutcome:
        """Ask for the rest of the answer and decode the merged text.

        Re-raises ``error`` when a continuation was already spent or the merged
        text still does not decode.
        """

        if self.attempted:
            raise error
        self.attempted = True
        if self._cancel is not None:
            self._cancel.raise_if_cancelled()
        self._log.info("Requesting continuation after malformed answer: {}", error)
        try:
            continuation = await self._session.prompt(
                continuation_prompt(), PromptOptions(cancel=self._cancel)
            )
        except PagewiseError:
            raise
        except Exception as exc:
            raise SessionError(f"Continuation request failed: {exc}") from exc
        if self._cancel is not None:
            self._cancel.raise_if_cancelled()
        merged = merge_continuation(raw_text, continuation)
        try:
            outcome = self._decoder.decode(merged, accept=accept)
        except MalformedResponse:
            self._log.warning("Continuation did not produce a decodable answer")
            raise error from None
        tiers = [*(error.tiers or [FAST_PATH]), CONTINUATION, *outcome.attempt.tiers]
        return DecodeOutcome(
            data=outcome.data,
            attempt=RecoveryAttempt(tiers=tiers, succeeded=CONTINUATION),
        )
