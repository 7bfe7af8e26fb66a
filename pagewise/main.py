"""Command-line entrypoint for pagewise."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

from loguru import logger

from .config import AppConfig, load_config
from .context.packer import ContextItem
from .decoding.factory import select_protocol_decoder
from .errors import CancellationError, SessionError
from .history.store import HistoryStore
from .llm import ModelAvailability, SessionOptions, build_provider
from .logging_utils import configure_logging
from .pipeline.service import IntentPipeline


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="pagewise")
    p.add_argument(
        "--config",
        default=os.environ.get("PAGEWISE_CONFIG", "pagewise.yml"),
        help="Path to config YAML (default: pagewise.yml or PAGEWISE_CONFIG).",
    )
    p.add_argument("--log-level", default=None, help="Override the configured log level.")
    sub = p.add_subparsers(dest="cmd", required=True)

    decode = sub.add_parser("decode", help="Interpret raw model output from a file or stdin.")
    decode.add_argument("file", nargs="?", type=Path, default=None)
    decode.add_argument("--protocol", choices=("json", "text"), default="json")

    ask = sub.add_parser("ask", help="Ask the configured model and interpret its answer.")
    ask.add_argument("prompt")
    ask.add_argument("--selection", default=None, help="Selected text to include first.")
    ask.add_argument("--tab", type=Path, action="append", default=[], help="Page text file.")
    ask.add_argument("--conversation", default=None, help="Store the turn under this id.")
    ask.add_argument(
        "--download", action="store_true", help="Pull the model first when it is missing."
    )

    sub.add_parser("status", help="Report model availability.")
    sub.add_parser("print-config", help="Load config and print resolved values.")
    return p.parse_args(argv)


def _load(path: Path) -> AppConfig:
    if path.exists():
        return load_config(path)
    return AppConfig()


def _emit(data: object) -> None:
    sys.stdout.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def _decode(config: AppConfig, args: argparse.Namespace) -> int:
    if args.file is None:
        raw = sys.stdin.read()
    else:
        raw = args.file.read_text(encoding="utf-8")
    decoder_config = config.decoder.model_copy(update={"protocol": args.protocol})
    decoder = select_protocol_decoder(decoder_config, supports_structured_output=True)
    result = IntentPipeline(decoder, config=config).interpret(raw)
    _emit(result.to_json())
    return 0


def _context_items(args: argparse.Namespace) -> list[ContextItem]:
    items: list[ContextItem] = []
    if args.selection:
        items.append(ContextItem(kind="selection", text=args.selection))
    for index, path in enumerate(args.tab):
        items.append(
            ContextItem(
                kind="tab",
                text=path.read_text(encoding="utf-8"),
                title=path.name,
                tab_id=index,
            )
        )
    return items


async def _ask(config: AppConfig, args: argparse.Namespace) -> int:
    provider = build_provider(config.llm)
    status = await provider.ensure_ready(download=args.download)
    if status is not ModelAvailability.READY:
        logger.error("Model {} is not ready ({})", config.llm.ollama_model, status.value)
        return 2
    pipeline = IntentPipeline.for_provider(config, provider)
    session = await provider.create_session(SessionOptions())
    try:
        outcome = await pipeline.run(session, args.prompt, _context_items(args))
    finally:
        await session.destroy()
    if args.conversation:
        store = HistoryStore(config.history)
        try:
            store.append(args.conversation, args.prompt, outcome.result)
        finally:
            store.close()
    _emit(
        {
            **outcome.result.to_json(),
            "context": {
                "truncated": outcome.pack_meta.truncated,
                "total_chars": outcome.pack_meta.total_chars,
                "included": [item.label for item in outcome.pack_meta.included],
            },
        }
    )
    return 0


async def _status(config: AppConfig) -> int:
    provider = build_provider(config.llm)
    status = await provider.availability()
    _emit(
        {"provider": config.llm.provider, "model": config.llm.ollama_model, "status": status.value}
    )
    return 0 if status is ModelAvailability.READY else 1


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    args = _parse_args(argv)

    config_path = Path(args.config)
    config = _load(config_path)
    configure_logging(
        config.logging.log_dir,
        args.log_level or config.logging.level,
        stream=sys.stderr,
    )

    if args.cmd == "print-config":
        logger.info("Resolved config loaded from {}", config_path)
        _emit(config.model_dump(mode="json"))
        return

    try:
        if args.cmd == "decode":
            code = _decode(config, args)
        elif args.cmd == "ask":
            code = asyncio.run(_ask(config, args))
        else:
            code = asyncio.run(_status(config))
    except CancellationError as exc:
        logger.warning("Cancelled: {}", exc)
        code = 130
    except SessionError as exc:
        logger.error("Model session failed: {}", exc)
        code = 3
    except KeyboardInterrupt:
        logger.info("Shutting down")
        code = 130
    raise SystemExit(code)


if __name__ == "__main__":
    main()
