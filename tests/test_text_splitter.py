"""Unit tests for RecursiveTextSplitter."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from services.text_splitter import RecursiveTextSplitter


class TestSplitterConfiguration:
    """Constructor validation."""

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError, match="chunk_size must be positive"):
            RecursiveTextSplitter(chunk_size=0, chunk_overlap=0)

    def test_rejects_negative_overlap(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            RecursiveTextSplitter(chunk_size=10, chunk_overlap=-1)

    def test_rejects_overlap_not_smaller_than_size(self):
        with pytest.raises(ValueError, match="must be smaller than chunk_size"):
            RecursiveTextSplitter(chunk_size=10, chunk_overlap=10)


class TestRecursiveTextSplitter:
    """Splitting behaviour."""

    def test_empty_text(self):
        splitter = RecursiveTextSplitter(chunk_size=10, chunk_overlap=2)
        assert splitter.split_text("") == []

    def test_short_text_is_one_piece(self):
        splitter = RecursiveTextSplitter(chunk_size=100, chunk_overlap=10)

        pieces = splitter.split_text("A short paragraph. With two sentences.")

        assert len(pieces) == 1
        assert pieces[0].text == "A short paragraph. With two sentences."
        assert pieces[0].start == 0

    def test_separator_starts_following_piece(self):
        splitter = RecursiveTextSplitter(chunk_size=8, chunk_overlap=0, separators=["\n\n", ""])

        pieces = splitter.split_text("aaaa\n\nbbbb")

        assert [p.text for p in pieces] == ["aaaa", "\n\nbbbb"]
        assert [p.start for p in pieces] == [0, 4]

    def test_overlap_carries_tail_of_previous_piece(self):
        splitter = RecursiveTextSplitter(chunk_size=20, chunk_overlap=8, separators=[" ", ""])

        pieces = splitter.split_text("aa bb cc dd ee ff gg hh")

        assert [p.text for p in pieces] == ["aa bb cc dd ee ff gg", " ff gg hh"]
        assert [p.start for p in pieces] == [0, 14]

    def test_character_fallback(self):
        splitter = RecursiveTextSplitter(chunk_size=4, chunk_overlap=0, separators=[""])

        pieces = splitter.split_text("abcdefghij")

        assert [p.text for p in pieces] == ["abcd", "efgh", "ij"]
        assert [p.start for p in pieces] == [0, 4, 8]

    def test_oversized_piece_cut_by_character_when_separators_run_out(self):
        splitter = RecursiveTextSplitter(chunk_size=5, chunk_overlap=0, separators=[" "])

        pieces = splitter.split_text("abcdefgh ij")

        assert [p.text for p in pieces] == ["abcde", "fgh", " ij"]
        assert [p.start for p in pieces] == [0, 5, 8]

    def test_custom_separators_without_empty_stay_bounded(self):
        paragraph = "".join(f"word{i} " for i in range(800))[:4999]
        text = paragraph + "\n\nshort tail"
        splitter = RecursiveTextSplitter(chunk_size=1200, chunk_overlap=180, separators=["\n\n"])

        pieces = splitter.split_text(text)

        assert len(pieces) > 2
        for piece in pieces:
            assert len(piece.text) <= 1200
            assert text[piece.start:piece.end] == piece.text
        assert pieces[-1].text == "\n\nshort tail"

    def test_chunk_size_one_with_word_separator(self):
        splitter = RecursiveTextSplitter(chunk_size=1, chunk_overlap=0, separators=[" "])

        pieces = splitter.split_text("ab c")

        assert [p.text for p in pieces] == ["a", "b", " ", "c"]

    def test_offset_is_added_to_starts(self):
        splitter = RecursiveTextSplitter(chunk_size=3, chunk_overlap=0, separators=[" ", ""])

        pieces = splitter.split_text("ab cd", offset=100)

        assert [p.start for p in pieces] == [100, 102]
        assert pieces[-1].end == 105

    def test_pieces_are_exact_slices_within_bounds(self):
        text = "\n\n".join(
            ". ".join(f"Paragraph {p} sentence {s} has several words in it" for s in range(12))
            for p in range(6)
        )
        splitter = RecursiveTextSplitter(chunk_size=300, chunk_overlap=45)

        pieces = splitter.split_text(text)

        assert len(pieces) > 1
        for piece in pieces:
            assert len(piece.text) <= 300
            assert text[piece.start:piece.end] == piece.text
        # Every character is covered by some piece
        covered = set()
        for piece in pieces:
            covered.update(range(piece.start, piece.end))
        assert covered == set(range(len(text)))

    def test_prefers_higher_priority_separator(self):
        text = "## One\nfirst section body\n## Two\nsecond section body"
        splitter = RecursiveTextSplitter(chunk_size=30, chunk_overlap=0)

        pieces = splitter.split_text(text)

        assert [p.text for p in pieces] == ["## One\nfirst section body", "\n## Two\nsecond section body"]
