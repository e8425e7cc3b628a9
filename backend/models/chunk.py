"""Chunk data models."""
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


@dataclass(frozen=True)
class Chunk:
    """A bounded, positioned fragment of one uploaded document."""
    chunk_id: str  # Format: "{source_id}-{position + 1}"
    content: str
    position: int
    total_chunks: int
    source_file: str
    owner_id: Optional[str] = None
    heading: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    embedding: Optional[List[float]] = None

    @property
    def length(self) -> int:
        return len(self.content)


@dataclass
class ScoredChunk:
    """Chunk returned by a nearest-neighbour query."""
    chunk: Chunk
    distance: float  # cosine distance, lower is closer
