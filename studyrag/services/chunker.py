"""Sliding word-window text chunking.

Splits document text into overlapping windows of whitespace-delimited
tokens, sized for small sentence-embedding models (500 tokens with a
100-token overlap by default).

Windows start at token 0 and advance by ``chunk_size - overlap`` while the
start position is inside the text, so consecutive windows share exactly
``overlap`` tokens and the final window may be short.  Tokens are rejoined
with single spaces; original line breaks are not preserved.
"""

from __future__ import annotations

import structlog

from studyrag.utils.errors import ValidationError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_CHUNK_SIZE = 500
DEFAULT_OVERLAP = 100


def _validate(chunk_size: int, overlap: int) -> None:
    if chunk_size <= 0:
        raise ValidationError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0:
        raise ValidationError(f"overlap must not be negative, got {overlap}")
    if overlap >= chunk_size:
        # A step of zero or less would never advance past the first window.
        raise ValidationError(
            f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})"
        )


def chunk(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_OVERLAP) -> list[str]:
    """Split *text* into overlapping word windows.

    Parameters
    ----------
    text:
        Source text.  Empty or whitespace-only text yields ``[]``.
    chunk_size:
        Maximum number of tokens per window.
    overlap:
        Number of tokens shared by consecutive windows.

    Raises
    ------
    ValidationError
        If ``chunk_size <= 0``, ``overlap < 0`` or ``overlap >= chunk_size``.
    """
    _validate(chunk_size, overlap)

    tokens = text.split()
    step = chunk_size - overlap
    windows: list[str] = []
    for start in range(0, len(tokens), step):
        window = " ".join(tokens[start : start + chunk_size])
        if window:
            windows.append(window)
    return windows


class TextChunker:
    """Configured chunker injected into :class:`IngestionService`.

    Parameters are validated once, at construction.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_OVERLAP) -> None:
        _validate(chunk_size, overlap)
        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    def chunk(self, text: str) -> list[str]:
        windows = chunk(text, self._chunk_size, self._overlap)
        logger.debug(
            "text_chunked",
            tokens=len(text.split()),
            chunks=len(windows),
            chunk_size=self._chunk_size,
            overlap=self._overlap,
        )
        return windows
