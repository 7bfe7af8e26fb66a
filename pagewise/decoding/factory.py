"""Pick the protocol decoder for a model session."""

from __future__ import annotations

from ..config import DecoderConfig
from ..logging_utils import get_logger
from .base import ProtocolDecoder
from .json_mode import JsonProtocolDecoder
from .text_protocol import TextProtocolDecoder

_log = get_logger("decoding.factory")


def select_protocol_decoder(
    config: DecoderConfig, *, supports_structured_output: bool
) -> ProtocolDecoder:
    """Resolve ``config.protocol`` once per session.

    ``auto`` follows the provider's capability; an explicit ``json`` or
    ``text`` always wins.
    """

    protocol = config.protocol
    if protocol == "auto":
        protocol = "json" if supports_structured_output else "text"
    json_decoder = JsonProtocolDecoder(max_candidates=config.max_candidates)
    if protocol == "json":
        decoder: ProtocolDecoder = json_decoder
    elif protocol == "text":
        decoder = TextProtocolDecoder(json_fallback=json_decoder)
    else:
        raise ValueError(f"Unknown response protocol: {config.protocol}")
    _log.info("Using {} response protocol", decoder.name)
    return decoder
