"""Logical character counting and truncation.

LINE shows a limit in user-perceived characters: an emoji is one character
no matter how many code points it is built from. Counting walks the text in
clusters (a base code point plus everything that modifies or joins onto it),
and truncation cuts only between clusters.

This approximates Unicode extended grapheme clusters for the cases that
matter in chat messages: emoji presentation selectors, skin tones, ZWJ
sequences, keycaps, flags and combining accents.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterator

ZWJ = "\u200d"


def _is_regional_indicator(ch: str) -> bool:
    return 0x1F1E6 <= ord(ch) <= 0x1F1FF


def _is_extender(ch: str) -> bool:
    """Code points that only modify the character before them."""
    cp = ord(ch)
    return (
        ch == ZWJ
        or 0xFE00 <= cp <= 0xFE0F  # variation selectors
        or 0x1F3FB <= cp <= 0x1F3FF  # skin tone modifiers
        or 0xE0020 <= cp <= 0xE007F  # emoji tag sequences
        or cp == 0x20E3  # combining enclosing keycap
        or unicodedata.combining(ch) != 0
    )


def _joins(cluster: str, ch: str) -> bool:
    if _is_extender(ch):
        return True
    if cluster[-1] == ZWJ:
        return True
    # Flags are pairs of regional indicators
    return (
        len(cluster) == 1
        and _is_regional_indicator(cluster)
        and _is_regional_indicator(ch)
    )


def iter_characters(text: str) -> Iterator[str]:
    """Yield the logical characters of *text* in order."""
    cluster = ""
    for ch in text:
        if cluster and _joins(cluster, ch):
            cluster += ch
            continue
        if cluster:
            yield cluster
        cluster = ch
    if cluster:
        yield cluster


def logical_length(text: str) -> int:
    """Number of logical characters in *text* (emoji count as one)."""
    return sum(1 for _ in iter_characters(text))


def truncate(text: str, limit: int) -> str:
    """Return the first *limit* logical characters of *text*.

    Text already within the limit is returned unchanged.
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    chars = list(iter_characters(text))
    if len(chars) <= limit:
        return text
    return "".join(chars[:limit])


def exceeds(text: str, limit: int) -> bool:
    return logical_length(text) > limit
