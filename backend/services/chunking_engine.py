"""Chunking engine with structural splitting and heading inference."""
import bisect
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from models.chunk import Chunk
from services.heading_detector import (
    collect_headings,
    find_nearest_heading,
    has_structural_markers,
    infer_heading_from_content,
)
from services.text_splitter import MARKDOWN_SEPARATORS, RecursiveTextSplitter, TextPiece
from config import (
    CHUNK_SIZE,
    CHUNK_OVERLAP_RATIO,
    STRUCTURAL_BLOCK_SIZE_CAP,
    STRUCTURAL_BLOCK_OVERLAP_CAP,
)

logger = logging.getLogger(__name__)


def default_overlap(chunk_size: int) -> int:
    """Default overlap: 15% of the chunk size."""
    return int(round(chunk_size * CHUNK_OVERLAP_RATIO))


class ChunkingEngine:
    """Segments extracted document text into positioned, heading-tagged chunks."""

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: Optional[int] = None,
        separators: Optional[Sequence[str]] = None
    ):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Target chunk size in characters
            chunk_overlap: Overlap between adjacent chunks (defaults to 15% of chunk_size)
            separators: Separator preference list for the bounded pass
        """
        self.chunk_size = chunk_size
        self.chunk_overlap = default_overlap(chunk_size) if chunk_overlap is None else chunk_overlap

        self.chunk_splitter = RecursiveTextSplitter(
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            separators=separators,
        )

        # Coarser, heading-aware pass for structured documents
        block_size = min(self.chunk_size * 2, STRUCTURAL_BLOCK_SIZE_CAP)
        block_overlap = min(self.chunk_overlap, STRUCTURAL_BLOCK_OVERLAP_CAP, block_size - 1)
        self.block_splitter = RecursiveTextSplitter(
            chunk_size=block_size,
            chunk_overlap=block_overlap,
            separators=MARKDOWN_SEPARATORS,
        )

    def split_text(self, raw_text: Optional[str], metadata: Optional[Dict[str, Any]] = None) -> List[Chunk]:
        """
        Split a document into chunks.

        Args:
            raw_text: Extracted plain text of the document
            metadata: Source metadata (`source`, `source_id`, `owner_id`, `mime_type`,
                optionally `heading`/`title` to force a heading on every chunk)

        Returns:
            Chunks in document order with positions 0..N-1; empty when the text is empty
        """
        metadata = dict(metadata or {})
        text = (raw_text or "").replace("\r\n", "\n").strip()
        if not text:
            logger.info("Empty document text, no chunks produced")
            return []

        headings = collect_headings(text.split("\n"))
        blocks = self._split_blocks(text)

        pieces: List[TextPiece] = []
        for block in blocks:
            pieces.extend(self.chunk_splitter.split_text(block.text, offset=block.start))

        chunks = self._assemble(text, pieces, headings, metadata)
        logger.info(
            f"Chunked {metadata.get('source', 'document')}: {len(blocks)} blocks, "
            f"{len(chunks)} chunks, {len(headings)} headings"
        )
        return chunks

    def _split_blocks(self, text: str) -> List[TextPiece]:
        """Partition along markdown sections when the text carries structural markers."""
        if has_structural_markers(text):
            logger.debug("Structural markers found, splitting into section blocks")
            return self.block_splitter.split_text(text)
        return [TextPiece(text=text, start=0)]

    def _assemble(
        self,
        text: str,
        pieces: List[TextPiece],
        headings: Dict[int, str],
        metadata: Dict[str, Any]
    ) -> List[Chunk]:
        """Final pass: trim, drop empty pieces, resolve headings and number positions."""
        newline_offsets = [index for index, char in enumerate(text) if char == "\n"]

        surviving: List[Tuple[str, int]] = []
        for piece in pieces:
            content = piece.text.strip()
            if not content:
                continue
            leading = len(piece.text) - len(piece.text.lstrip())
            start_line = bisect.bisect_left(newline_offsets, piece.start + leading)
            surviving.append((content, start_line))

        total_chunks = len(surviving)
        source_id = metadata.get("source_id") or metadata.get("source") or "chunk"
        source_file = metadata.get("source") or source_id
        forced_heading = metadata.get("heading") or metadata.get("title")

        chunks = []
        for position, (content, start_line) in enumerate(surviving):
            heading = (
                forced_heading
                or find_nearest_heading(start_line, headings)
                or infer_heading_from_content(content)
            )
            chunks.append(Chunk(
                chunk_id=f"{source_id}-{position + 1}",
                content=content,
                position=position,
                total_chunks=total_chunks,
                source_file=source_file,
                owner_id=metadata.get("owner_id"),
                heading=heading,
                metadata={**metadata, "start_line": start_line, "length": len(content)},
            ))

        return chunks


def split_text(
    raw_text: Optional[str],
    chunk_size: int = CHUNK_SIZE,
    chunk_overlap: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    separators: Optional[Sequence[str]] = None
) -> List[Chunk]:
    """Split text with a one-off ChunkingEngine."""
    engine = ChunkingEngine(chunk_size=chunk_size, chunk_overlap=chunk_overlap, separators=separators)
    return engine.split_text(raw_text, metadata=metadata)
