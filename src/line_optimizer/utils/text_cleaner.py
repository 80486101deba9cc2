"""Clean plain-text LLM replies before they are shown to the user."""

from __future__ import annotations


def clean_reply(text: str | None) -> str:
    """Trim a reply and unwrap it if the model put it in a code fence.

    Returns an empty string for ``None`` or whitespace-only replies.
    """
    if not text:
        return ""
    text = text.strip()
    if text.startswith("```"):
        text = strip_code_fences(text)
    return text


def strip_code_fences(text: str) -> str:
    """Remove markdown code fence markers from text."""
    lines = text.split("\n")

    # Remove opening fence (```text, ```, etc.)
    if lines and lines[0].strip().startswith("```"):
        lines = lines[1:]

    # Remove closing fence
    while lines and lines[-1].strip() in ("```", ""):
        lines = lines[:-1]

    return "\n".join(lines).strip()
