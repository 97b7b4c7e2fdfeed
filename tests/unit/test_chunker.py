"""Unit tests for the sliding word-window chunker."""

from __future__ import annotations

import pytest

from studyrag.services.chunker import TextChunker, chunk
from studyrag.utils.errors import ValidationError


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


class TestChunk:
    def test_empty_text_yields_no_chunks(self) -> None:
        assert chunk("") == []
        assert chunk("   \n\t  ") == []

    def test_short_text_is_single_chunk(self) -> None:
        assert chunk("The deadline for Assignment 2 is March 5.") == [
            "The deadline for Assignment 2 is March 5."
        ]

    def test_whitespace_is_collapsed(self) -> None:
        assert chunk("alpha\n\nbeta\t gamma", chunk_size=10, overlap=2) == ["alpha beta gamma"]

    def test_windows_respect_size_and_overlap(self) -> None:
        chunks = chunk(_words(23), chunk_size=10, overlap=3)
        token_lists = [c.split() for c in chunks]

        assert all(len(tokens) <= 10 for tokens in token_lists)
        for current, following in zip(token_lists, token_lists[1:]):
            if len(current) == 10:
                assert current[-3:] == following[:3]

    def test_window_starts_advance_by_step(self) -> None:
        chunks = chunk(_words(10), chunk_size=5, overlap=2)

        assert [c.split()[0] for c in chunks] == ["w0", "w3", "w6", "w9"]
        assert chunks[-1] == "w9"

    def test_chunk_count_for_default_parameters(self) -> None:
        chunks = chunk(_words(1200))

        # starts at 0, 400, 800
        assert len(chunks) == 3
        assert len(chunks[0].split()) == 500
        assert chunks[1].split()[0] == "w400"
        assert len(chunks[2].split()) == 400

    def test_no_overlap(self) -> None:
        assert chunk(_words(6), chunk_size=3, overlap=0) == ["w0 w1 w2", "w3 w4 w5"]

    def test_deterministic(self) -> None:
        text = _words(97)
        assert chunk(text, 20, 5) == chunk(text, 20, 5)

    @pytest.mark.parametrize(
        ("size", "overlap"),
        [(10, 10), (10, 11), (0, 0), (-5, 0), (10, -1)],
    )
    def test_invalid_parameters_raise(self, size: int, overlap: int) -> None:
        with pytest.raises(ValidationError):
            chunk(_words(50), chunk_size=size, overlap=overlap)

    def test_invalid_parameters_raise_even_for_empty_text(self) -> None:
        with pytest.raises(ValidationError):
            chunk("", chunk_size=5, overlap=5)


class TestTextChunker:
    def test_validates_at_construction(self) -> None:
        with pytest.raises(ValidationError):
            TextChunker(chunk_size=100, overlap=100)

    def test_defaults(self) -> None:
        chunker = TextChunker()
        assert chunker.chunk_size == 500
        assert chunker.overlap == 100

    def test_chunk_matches_function(self) -> None:
        chunker = TextChunker(chunk_size=7, overlap=2)
        text = _words(30)
        assert chunker.chunk(text) == chunk(text, 7, 2)
