"""Text normalization and chunking ahead of embedding."""

import re
from typing import Any

from common.utils import get_value

DEFAULT_CHUNK_CHARS = 8000
SPLIT_THRESHOLD = 0.7

_CODE_FENCE_RE = re.compile(r"```[\s\S]*?```")
_INLINE_CODE_RE = re.compile(r"`[^`]*`")
_URL_RE = re.compile(r"https?://\S+")
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")


def build_post_text(post: Any) -> str:
    """Join title and body with a newline; missing parts count as empty."""
    title = get_value(post, "title") or ""
    body = get_value(post, "body") or ""
    return f"{title}\n{body}".strip()


def clean_for_embedding(text: str) -> str:
    """Strip code fences, inline code, URLs and markup, then collapse whitespace."""
    if not text:
        return ""
    text = _CODE_FENCE_RE.sub(" ", text)
    text = _INLINE_CODE_RE.sub(" ", text)
    text = _URL_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def is_too_short(text: str, min_chars: int = 3) -> bool:
    """True when the text is too short to be worth an embedding call."""
    return not text or len(text) < min_chars


def chunk_by_chars(text: str, max_chars: int = DEFAULT_CHUNK_CHARS) -> list[str]:
    """Split text into contiguous chunks of at most max_chars characters.

    Each window is cut at its last space when that space lies past 70% of
    max_chars, otherwise exactly at the window edge. The space stays at the
    head of the next chunk, so joining the chunks gives back the input.
    """
    if max_chars < 1:
        raise ValueError("max_chars must be at least 1")
    if len(text) <= max_chars:
        return [text]

    chunks = []
    offset = 0
    while offset < len(text):
        end = min(offset + max_chars, len(text))
        window = text[offset:end]
        last_space = window.rfind(" ")
        split_at = offset + last_space if last_space > max_chars * SPLIT_THRESHOLD else end
        chunks.append(text[offset:split_at])
        offset = split_at
    return chunks
