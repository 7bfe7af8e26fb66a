import asyncio

import pytest

from pagewise.config import AppConfig, DecoderConfig, LLMConfig
from pagewise.context.packer import ContextItem
from pagewise.decoding import JsonProtocolDecoder, TextProtocolDecoder
from pagewise.errors import CancellationError, SessionError
from pagewise.intents import Intent
from pagewise.llm.session import CancellationToken
from pagewise.pipeline.fallback import FALLBACK_TLDR
from pagewise.pipeline.service import IntentPipeline


def _json_pipeline(config: AppConfig | None = None) -> IntentPipeline:
    return IntentPipeline(JsonProtocolDecoder(), config=config)


def test_end_to_end_scenarios() -> None:
    pipeline = _json_pipeline()

    summary = pipeline.interpret(
        'Here: ```json\n{"intent":"SUMMARIZE","summary":{"tldr":"Short.",'
        '"bullets":["a","b"]}}\n```\nThanks'
    )
    assert summary.intent is Intent.SUMMARIZE
    assert summary.payload.tldr == "Short."
    assert summary.payload.bullets == ("a", "b")
    assert summary.recovered is True

    write = pipeline.interpret('{"intent":"WRITE","draft":"Hello wor')
    assert write.intent is Intent.WRITE
    assert write.payload.draft == "Hello wor"

    text = IntentPipeline(TextProtocolDecoder()).interpret(
        "INTENT: HIGHLIGHT\nHIGHLIGHTS:\n- revenue grew 12%\n- costs fell\nEND\nnoise after"
    )
    assert text.intent is Intent.HIGHLIGHT
    assert text.payload.highlights == ("revenue grew 12%", "costs fell")

    coerced = pipeline.interpret('{"type":"write","draft":"X"}')
    assert coerced.intent is Intent.WRITE
    assert coerced.payload.draft == "X"
    assert coerced.recovered is False

    fallback = pipeline.interpret("I cannot help with that request.", "help me")
    assert fallback.synthetic is True
    assert fallback.payload.tldr == FALLBACK_TLDR

    smart = pipeline.interpret('{“intent”: “HIGHLIGHT”, "highlights": ["x",] }')
    assert smart.intent is Intent.HIGHLIGHT
    assert smart.payload.highlights == ("x",)


def test_first_valid_candidate_wins_over_earlier_invalid_one() -> None:
    result = _json_pipeline().interpret(
        '```json\n{"intent": "SUMMARIZE"}\n``` {"intent": "WRITE", "draft": "ok"}'
    )
    assert result.intent is Intent.WRITE


def test_draft_with_curly_quotes_is_not_replaced_by_fallback() -> None:
    result = _json_pipeline().interpret(
        '{"intent":"WRITE","draft":"He said “hello” to everyone."}'
    )

    assert result.synthetic is False
    assert result.payload.draft == "He said “hello” to everyone."


def test_schema_violation_falls_back() -> None:
    result = _json_pipeline().interpret('{"intent": "DANCE", "moves": 3}', "dance")

    assert result.synthetic is True
    assert "dance" in result.payload.explain


def test_truncated_answer_is_continued_once(session_factory) -> None:
    session = session_factory('{"intent": "NONE", "explain": "Nothing to do."}')

    result = asyncio.run(
        _json_pipeline().interpret_async("Let me think about that...", session=session)
    )

    assert result.intent is Intent.NONE
    assert result.recovered is True
    assert session.calls == 1


def test_failed_continuation_falls_back_after_one_call(session_factory) -> None:
    session = session_factory("still nothing", "and again")

    result = asyncio.run(
        _json_pipeline().interpret_async("no json", session=session, original_prompt="p")
    )

    assert result.synthetic is True
    assert session.calls == 1


def test_continuation_respects_config_and_protocol(session_factory) -> None:
    session = session_factory('{"intent": "NONE", "explain": "x"}')
    config = AppConfig(decoder=DecoderConfig(continuation_enabled=False))

    disabled = asyncio.run(_json_pipeline(config).interpret_async("no json", session=session))
    text = asyncio.run(
        IntentPipeline(TextProtocolDecoder()).interpret_async("no labels", session=session)
    )

    assert disabled.synthetic is True
    assert text.synthetic is True
    assert session.calls == 0


def test_cancellation_is_not_downgraded_to_fallback(session_factory) -> None:
    session = session_factory('{"intent": "NONE", "explain": "x"}')
    cancel = CancellationToken()
    cancel.cancel("user closed the popup")

    with pytest.raises(CancellationError, match="user closed the popup"):
        asyncio.run(_json_pipeline().interpret_async("no json", session=session, cancel=cancel))
    assert session.calls == 0

    text_pipeline = IntentPipeline(TextProtocolDecoder())
    with pytest.raises(CancellationError):
        asyncio.run(text_pipeline.interpret_async("no labels", cancel=cancel))


def test_run_packs_prompt_and_sends_schema(session_factory) -> None:
    session = session_factory('{"intent": "WRITE", "draft": "Thanks!"}')
    contexts = [
        ContextItem(kind="tab", text="Tab body.", title="Inbox", tab_id=1),
        ContextItem(kind="selection", text="Selected words.", tab_id=1),
    ]

    outcome = asyncio.run(_json_pipeline().run(session, "Reply politely", contexts))

    assert outcome.result.intent is Intent.WRITE
    assert outcome.raw_text == '{"intent": "WRITE", "draft": "Thanks!"}'
    assert [item.index for item in outcome.pack_meta.included] == [1, 0]
    prompt = session.prompts[0]
    assert 'USER REQUEST: "Reply politely"' in prompt
    assert prompt.index("SELECTION CONTEXT") < prompt.index("PAGE CONTEXT (Inbox)")
    assert "single JSON object" in prompt
    assert session.options[0].response_schema["required"] == ["intent"]
    assert session.streamed is False


def test_run_streams_long_prompts(session_factory) -> None:
    session = session_factory(chunks=['{"intent": "NONE", ', '"explain": "streamed"}'])
    config = AppConfig(llm=LLMConfig(single_shot_max_chars=0))

    outcome = asyncio.run(_json_pipeline(config).run(session, "Anything?"))

    assert session.streamed is True
    assert outcome.result.payload.explain == "streamed"


def test_run_without_structured_output_sends_no_schema(session_factory) -> None:
    session = session_factory('{"intent": "NONE", "explain": "x"}')
    config = AppConfig(llm=LLMConfig(structured_output=False))

    asyncio.run(_json_pipeline(config).run(session, "Anything?"))

    assert session.options[0].response_schema is None


def test_cancel_mid_stream_aborts_without_fallback(session_factory) -> None:
    cancel = CancellationToken()
    session = session_factory(
        chunks=['{"intent": ', '"NONE", ', '"explain": "x"}'],
        on_chunk=lambda chunk: cancel.cancel(),
    )
    config = AppConfig(llm=LLMConfig(single_shot_max_chars=0))

    with pytest.raises(CancellationError):
        asyncio.run(_json_pipeline(config).run(session, "Anything?", cancel=cancel))


def test_session_errors_propagate(session_factory) -> None:
    failing = session_factory(error=SessionError("model unavailable"))
    with pytest.raises(SessionError, match="model unavailable"):
        asyncio.run(_json_pipeline().run(failing, "hi"))

    broken = session_factory(error=RuntimeError("socket closed"))
    with pytest.raises(SessionError) as excinfo:
        asyncio.run(_json_pipeline().run(broken, "hi"))
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_for_provider_picks_protocol_from_capability(provider_factory) -> None:
    config = AppConfig()

    structured = IntentPipeline.for_provider(config, provider_factory(structured=True))
    plain = IntentPipeline.for_provider(config, provider_factory(structured=False))

    assert structured.decoder.name == "json"
    assert plain.decoder.name == "text"
    assert "INTENT:" in plain.decoder.format_instructions()
