"""Budgeted assembly of the page context fed to the model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal

from ..config import ContextConfig
from ..logging_utils import get_logger

_SENTENCE_ENDS = ".?!"


@dataclass(frozen=True)
class ContextItem:
    kind: Literal["selection", "tab"]
    text: str
    title: str | None = None
    url: str | None = None
    tab_id: int | None = None

    @property
    def label(self) -> str:
        if self.kind == "selection":
            return f"selection (tab {self.tab_id})" if self.tab_id is not None else "selection"
        return self.title or self.url or f"tab {self.tab_id}"


@dataclass(frozen=True)
class IncludedContext:
    index: int
    kind: str
    label: str
    chars: int
    clipped: bool


@dataclass(frozen=True)
class PackMeta:
    truncated: bool
    total_chars: int
    included: list[IncludedContext] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)


def truncate_at_sentence(text: str, limit: int, *, window: float = 0.3) -> str:
    """Cut ``text`` to ``limit`` chars, preferring a sentence end near the cut.

    Only sentence ends inside the last ``window`` fraction of the limit count;
    otherwise the text is hard-cut at ``limit``.
    """

    if len(text) <= limit:
        return text
    head = text[:limit]
    floor = int(limit * (1.0 - window))
    best = max(head.rfind(ch) for ch in _SENTENCE_ENDS)
    if best >= floor:
        return head[: best + 1]
    return head


class ContextPacker:
    def __init__(self, config: ContextConfig | None = None) -> None:
        self._config = config or ContextConfig()
        self._log = get_logger("context.packer")

    def pack(self, prompt: str, items: Iterable[ContextItem]) -> tuple[str, PackMeta]:
        """Return the text for the model and what went into it.

        The first selection is packed first and is the only one honored; tab
        snippets follow in the order given until the budget is reached.
        """

        cfg = self._config
        indexed = list(enumerate(items))
        # Stable sort: selections ahead of tabs, original order otherwise.
        ordered = sorted(indexed, key=lambda pair: pair[1].kind != "selection")
        sections: list[str] = []
        included: list[IncludedContext] = []
        skipped: list[int] = []
        total = 0
        truncated = False
        selection_seen = False
        for position, (index, item) in enumerate(ordered):
            if item.kind == "selection":
                if selection_seen:
                    skipped.append(index)
                    continue
                selection_seen = True
                limit = cfg.selection_max_chars
            elif item.kind == "tab":
                limit = cfg.tab_max_chars
            else:
                skipped.append(index)
                continue
            raw = (item.text or "").strip()
            body = truncate_at_sentence(raw, limit, window=cfg.sentence_window)
            if not body:
                skipped.append(index)
                continue
            if total + len(body) > cfg.budget_chars:
                truncated = True
                skipped.extend(rest_index for rest_index, _ in ordered[position:])
                break
            total += len(body)
            sections.append(_format_section(item, body))
            included.append(
                IncludedContext(
                    index=index,
                    kind=item.kind,
                    label=item.label,
                    chars=len(body),
                    clipped=len(body) < len(raw),
                )
            )
        if truncated:
            self._log.info(
                "Context budget of {} chars reached; packed {} of {} items",
                cfg.budget_chars,
                len(included),
                len(indexed),
            )
        meta = PackMeta(
            truncated=truncated,
            total_chars=total,
            included=included,
            skipped=sorted(skipped),
        )
        parts = [f'USER REQUEST: "{prompt.strip()}"']
        if sections:
            parts.append("DOCUMENT CONTEXT:\n---\n" + "\n\n".join(sections) + "\n---")
        return "\n\n".join(parts), meta


def pack(
    prompt: str, items: Iterable[ContextItem], config: ContextConfig | None = None
) -> tuple[str, PackMeta]:
    return ContextPacker(config).pack(prompt, items)


def _format_section(item: ContextItem, body: str) -> str:
    if item.kind == "selection":
        origin = f" (from tab {item.tab_id})" if item.tab_id is not None else ""
        return f"SELECTION CONTEXT{origin}:\n{body}"
    return f"PAGE CONTEXT ({item.label}):\n{body}"
