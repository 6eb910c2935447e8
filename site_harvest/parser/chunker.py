# File: site_harvest/parser/chunker.py
"""Fixed-window text chunking with content-addressed chunk ids."""
from __future__ import annotations

import hashlib
from typing import List, Sequence

from site_harvest.crawler.models import ContentChunk

__all__: Sequence[str] = ("chunk_id", "chunk_text", "content_hash")


def content_hash(text: str) -> str:
    """SHA-256 hex digest of *text*."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def chunk_id(url: str, offset: int) -> str:
    """Deterministic id of the chunk starting at *offset* of the page at *url*."""
    return content_hash(f"{url}#{offset}")[:16]


def chunk_text(
    text: str,
    url: str,
    size: int = 2000,
    overlap: int = 200,
    min_length: int = 100,
) -> List[ContentChunk]:
    """Split *text* into windows of *size* characters advancing by ``size - overlap``.

    Windows whose trimmed text is shorter than *min_length* are dropped.
    Offsets refer to the untrimmed input, so the same text at the same URL
    always yields identical chunks.
    """
    if size <= 0:
        raise ValueError("size must be positive")
    if not 0 <= overlap < size:
        raise ValueError("overlap must be in [0, size)")

    step = size - overlap
    chunks: List[ContentChunk] = []
    for offset in range(0, len(text), step):
        window = text[offset : offset + size].strip()
        if len(window) < min_length:
            continue
        chunks.append(
            ContentChunk(
                id=chunk_id(url, offset),
                text=window,
                offset=offset,
                word_count=len(window.split()),
            )
        )
    return chunks
