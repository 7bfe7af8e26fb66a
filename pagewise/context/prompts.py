"""Prompt templates wrapped around the packed page context."""

from __future__ import annotations

SYSTEM_PREAMBLE = (
    "You are an intelligent assistant that analyzes web page content. "
    "Decide what the user wants and answer with exactly one intent:\n"
    "- SUMMARIZE: a short tldr (at most 150 characters) and 1-5 bullets "
    "(each at most 120 characters).\n"
    "- WRITE: a new draft text (at most 1200 characters).\n"
    "- CORRECT: a corrected version of the user's text (at most 1200 characters).\n"
    "- HIGHLIGHT: 1-5 exact phrases copied verbatim from the document.\n"
    "- NONE: a short explanation when none of the above applies."
)

JSON_FORMAT_INSTRUCTIONS = (
    "Respond with a single JSON object and nothing else. Do not include commentary "
    "or markdown. Use the keys intent, tldr, bullets, draft, correction, highlights, "
    "explain and confidence (0 to 1); include only the keys the chosen intent needs."
)

TEXT_PROTOCOL_INSTRUCTIONS = (
    "Respond using labelled lines, not JSON. Start with 'INTENT: <intent>'. Then use "
    "the sections the intent needs:\n"
    "TLDR: <one line>\n"
    "BULLETS: followed by lines starting with '- '\n"
    "HIGHLIGHTS: followed by lines starting with '- ' containing exact phrases\n"
    "DRAFT: followed by the draft text\n"
    "CORRECTION: followed by the corrected text\n"
    "EXPLAIN: <one line, optional>\n"
    "Finish with a line containing only END."
)

CONTINUATION_INSTRUCTIONS = (
    "Your previous answer was cut off. Continue exactly where it stopped and emit "
    "only the remaining JSON. Do not repeat anything already written and do not add "
    "any text outside the JSON."
)


def build_prompt(packed_text: str, instructions: str) -> str:
    """Compose the full prompt from packed request text and format instructions."""

    return "\n\n".join([SYSTEM_PREAMBLE, packed_text, instructions])


def continuation_prompt() -> str:
    return CONTINUATION_INSTRUCTIONS
