"""Text chunker: token windows, paragraph packing and code-line packing.

Sizes are counted in whitespace-delimited tokens. Every mode numbers its chunks
sequentially from 0, and never emits a chunk that is empty after stripping.
"""

from __future__ import annotations

import re

from brain.models import Chunk

# Blank line: a newline, optional horizontal whitespace, another newline.
_PARAGRAPH_BREAK_RE = re.compile(r"\n[ \t\r\f\v]*\n")

# Lines carried from a flushed code chunk into the next one.
CODE_OVERLAP_LINES = 5


def count_tokens(text: str) -> int:
    return len(text.split())


class TextChunker:
    """Split document text into bounded, overlapping chunks.

    Args:
        chunk_size: Maximum tokens per chunk (a single oversized paragraph or
            line is still emitted whole).
        chunk_overlap: Tokens shared by consecutive token-window chunks.
            Must be smaller than *chunk_size* so every window advances.
    """

    def __init__(self, chunk_size: int = 512, chunk_overlap: int = 50) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap must be >= 0")
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk(self, text: str) -> list[Chunk]:
        """Sliding window of ``chunk_size`` tokens, stepping back ``chunk_overlap``."""
        words = text.split()
        if not words:
            return []

        texts: list[str] = []
        start = 0
        while start < len(words):
            end = min(start + self.chunk_size, len(words))
            content = " ".join(words[start:end])
            if content.strip():
                texts.append(content)
            if end >= len(words):
                break
            start = max(end - self.chunk_overlap, start, 0)

        return _make_chunks(texts)

    def chunk_by_paragraphs(self, text: str) -> list[Chunk]:
        """Pack whole paragraphs into chunks; a paragraph is never split."""
        texts: list[str] = []
        buffer = ""
        size = 0

        for para in _PARAGRAPH_BREAK_RE.split(text):
            para_tokens = count_tokens(para)
            if size + para_tokens > self.chunk_size and buffer:
                if buffer.strip():
                    texts.append(buffer.strip())
                buffer = ""
                size = 0

            if buffer:
                buffer += "\n\n"
            buffer += para
            size += para_tokens

        if buffer.strip():
            texts.append(buffer.strip())

        return _make_chunks(texts)

    def chunk_code(self, code: str) -> list[Chunk]:
        """Pack whole lines into chunks, seeding each new chunk with the last 5 lines."""
        texts: list[str] = []
        lines: list[str] = []
        size = 0

        for line in code.splitlines():
            line_tokens = count_tokens(line)
            if size + line_tokens > self.chunk_size and lines:
                content = "\n".join(lines)
                if content.strip():
                    texts.append(content)
                lines = lines[-CODE_OVERLAP_LINES:]
                size = sum(count_tokens(kept) for kept in lines)

            lines.append(line)
            size += line_tokens

        if lines:
            content = "\n".join(lines)
            if content.strip():
                texts.append(content)

        return _make_chunks(texts)


def _make_chunks(texts: list[str]) -> list[Chunk]:
    return [Chunk(content=t, index=i) for i, t in enumerate(texts)]
