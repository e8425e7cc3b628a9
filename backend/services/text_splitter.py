"""Recursive, size-bounded text splitting with overlap and offset tracking."""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_SEPARATORS = [
    "\n### ",
    "\n## ",
    "\n# ",
    "\n\n",
    ". ",
    " ",
    "",
]

# Heading-aware separators used for the coarse structural pass
MARKDOWN_SEPARATORS = [
    "\n# ",
    "\n## ",
    "\n### ",
    "\n#### ",
    "\n##### ",
    "\n###### ",
    "```\n",
    "\n***\n",
    "\n---\n",
    "\n___\n",
    "\n\n",
    "\n",
    " ",
    "",
]


@dataclass
class TextPiece:
    """A slice of the source text and the character offset it starts at."""
    text: str
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.text)


class RecursiveTextSplitter:
    """
    Split text into pieces no longer than chunk_size characters.

    Separators are tried in priority order. The first separator present in
    the text is used to cut it; pieces that are still too large are split
    again with the remaining separators. The empty separator cuts at raw
    character boundaries, and is also used once a caller-supplied list runs
    out, so no piece exceeds chunk_size. Small neighbouring pieces are merged back up to
    chunk_size, carrying up to chunk_overlap characters of the previous
    piece into the next one. Separators stay attached to the start of the
    piece that follows them, so every piece is an exact slice of the input.
    """

    def __init__(
        self,
        chunk_size: int,
        chunk_overlap: int,
        separators: Optional[Sequence[str]] = None
    ):
        """
        Initialize RecursiveTextSplitter.

        Args:
            chunk_size: Maximum piece length in characters
            chunk_overlap: Maximum characters shared by adjacent pieces
            separators: Separators in priority order (defaults to DEFAULT_SEPARATORS)
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0:
            raise ValueError("chunk_overlap cannot be negative")
        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
            )

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = list(separators) if separators is not None else list(DEFAULT_SEPARATORS)

    def split_text(self, text: str, offset: int = 0) -> List[TextPiece]:
        """
        Split text into bounded pieces.

        Args:
            text: Text to split
            offset: Offset of `text` inside the enclosing document

        Returns:
            Ordered pieces with absolute start offsets
        """
        if not text:
            return []
        return self._split(TextPiece(text=text, start=offset), self.separators)

    def _split(self, piece: TextPiece, separators: List[str]) -> List[TextPiece]:
        separator = ""
        remaining: List[str] = []
        for index, candidate in enumerate(separators):
            if candidate == "":
                separator = candidate
                break
            if candidate in piece.text:
                separator = candidate
                remaining = separators[index + 1:]
                break

        final_pieces: List[TextPiece] = []
        small_pieces: List[TextPiece] = []

        for split in self._split_on(piece, separator):
            if len(split.text) < self.chunk_size:
                small_pieces.append(split)
                continue

            if small_pieces:
                final_pieces.extend(self._merge(small_pieces))
                small_pieces = []

            if remaining:
                final_pieces.extend(self._split(split, remaining))
            elif separator != "":
                logger.debug(
                    f"No separator left for a {len(split.text)}-character piece; "
                    f"cutting at character boundaries"
                )
                final_pieces.extend(self._split(split, [""]))
            else:
                # Single character with chunk_size 1
                final_pieces.append(split)

        if small_pieces:
            final_pieces.extend(self._merge(small_pieces))

        return final_pieces

    @staticmethod
    def _split_on(piece: TextPiece, separator: str) -> List[TextPiece]:
        """Cut a piece on a separator, keeping the separator at the start of the following slice."""
        if separator == "":
            return [
                TextPiece(text=char, start=piece.start + index)
                for index, char in enumerate(piece.text)
            ]

        parts = piece.text.split(separator)
        splits: List[TextPiece] = []
        cursor = piece.start

        if parts[0]:
            splits.append(TextPiece(text=parts[0], start=cursor))
        cursor += len(parts[0])

        for part in parts[1:]:
            text = separator + part
            splits.append(TextPiece(text=text, start=cursor))
            cursor += len(text)

        return splits

    def _merge(self, splits: List[TextPiece]) -> List[TextPiece]:
        """Merge contiguous small splits into pieces of at most chunk_size characters."""
        merged: List[TextPiece] = []
        window: List[TextPiece] = []
        total = 0

        for split in splits:
            length = len(split.text)

            if window and total + length > self.chunk_size:
                merged.append(self._join(window))

                # Keep a tail of the window as overlap for the next piece
                while total > self.chunk_overlap or (total + length > self.chunk_size and total > 0):
                    total -= len(window[0].text)
                    window.pop(0)

            window.append(split)
            total += length

        if window:
            merged.append(self._join(window))

        return merged

    @staticmethod
    def _join(window: List[TextPiece]) -> TextPiece:
        return TextPiece(text="".join(p.text for p in window), start=window[0].start)
