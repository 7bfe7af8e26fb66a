"""Protocol decoder strategy shared by the JSON and text protocols."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

FAST_PATH = "fast_path"
FENCE = "fence"
BALANCED_SCAN = "balanced_scan"
EOF_COMPLETION = "eof_completion"
TEXT_PROTOCOL = "text_protocol"
CONTINUATION = "continuation"

AcceptFn = Callable[[dict[str, Any]], bool]


@dataclass
class RecoveryAttempt:
    """Tiers tried during one decode, for diagnostics only."""

    tiers: list[str] = field(default_factory=list)
    succeeded: str | None = None

    def tried(self, tier: str) -> None:
        if not self.tiers or self.tiers[-1] != tier:
            self.tiers.append(tier)

    @property
    def recovered(self) -> bool:
        # Anything other than the first tier tried counts as recovery.
        return bool(self.tiers) and self.succeeded not in (None, self.tiers[0])


@dataclass(frozen=True)
class DecodeOutcome:
    data: dict[str, Any]
    attempt: RecoveryAttempt


class ProtocolDecoder(ABC):
    """Turns raw model text into an unvalidated field map."""

    name: str = "base"
    supports_continuation: bool = False

    @abstractmethod
    def decode(self, raw_text: str, *, accept: AcceptFn | None = None) -> DecodeOutcome:
        """Return the decoded object or raise ``MalformedResponse``."""

    @abstractmethod
    def format_instructions(self) -> str:
        """Prompt text telling the model how to format its answer."""

    def response_constraint(self) -> dict[str, Any] | None:
        return None
