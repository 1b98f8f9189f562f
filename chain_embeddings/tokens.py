"""
Token budgeting for text sent to the language and embedding models.

Channel transcripts grow without bound, so the history handed to the
context model is cut to a token budget, keeping the most recent lines.
Chain text is cut at the embedding model's input limit.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import tiktoken

logger = logging.getLogger(__name__)

# Embedding model token limit (voyage-3-large and text-embedding-3-* both accept more,
# but cl100k_base counts are only an approximation for non-OpenAI tokenizers)
EMBED_TOKEN_LIMIT = 8192
_TIKTOKEN_ENCODING = "cl100k_base"

# Lazy-initialized encoder (avoid import-time cost)
_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    """Get or create the tiktoken encoder (lazy singleton)."""
    global _encoder
    if _encoder is None:
        _encoder = tiktoken.get_encoding(_TIKTOKEN_ENCODING)
    return _encoder


def count_tokens(text: str) -> int:
    """Count tokens in text using the cl100k_base tokenizer."""
    return len(_get_encoder().encode(text))


def truncate_to_tokens(text: str, max_tokens: int) -> str:
    """Truncate text to fit within a token limit, keeping the beginning.

    Args:
        text: The text to truncate.
        max_tokens: Maximum number of tokens allowed.

    Returns:
        The truncated text (or original if already within limit).
    """
    encoder = _get_encoder()
    tokens = encoder.encode(text)
    if len(tokens) <= max_tokens:
        return text
    return encoder.decode(tokens[:max_tokens])


def keep_last_lines(
    lines: list[str],
    max_tokens: int,
    is_heading: Callable[[str], bool] | None = None,
) -> list[str]:
    """Keep the most recent whole lines that fit in ``max_tokens`` tokens.

    With ``is_heading``, the closest heading above the cut (a transcript's
    date line) is put back in front of the kept lines, so times are never
    shown without their day.
    """
    encoder = _get_encoder()
    # +1 for the joining newline
    costs = [len(encoder.encode(line)) + 1 for line in lines]
    if sum(costs) <= max_tokens:
        return list(lines)

    start, used = len(lines), 0
    while start > 0 and used + costs[start - 1] <= max_tokens:
        used += costs[start - 1]
        start -= 1
    logger.debug(f"Transcript truncated from {sum(costs)} to {used} tokens")

    if start == len(lines):
        # Not even the newest line fits: keep its end
        tokens = encoder.encode(lines[-1])
        return [encoder.decode(tokens[-max_tokens:])] if max_tokens > 0 else []

    if is_heading is not None:
        while start < len(lines) and not is_heading(lines[start]):
            heading = next((i for i in range(start - 1, -1, -1) if is_heading(lines[i])), None)
            if heading is None:
                break
            if used + costs[heading] <= max_tokens:
                return [lines[heading], *lines[start:]]
            used -= costs[start]
            start += 1
    return lines[start:]
