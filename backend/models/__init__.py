"""Data models for the Starlight document assistant."""
from .document import RawDocument, DocumentSummary
from .chunk import Chunk, ScoredChunk
from .conversation import ConversationTurn
from .summary import ChunkSummary, MapOutcome, MapResult, SummarizationResult, SummarizationState

__all__ = [
    "RawDocument",
    "DocumentSummary",
    "Chunk",
    "ScoredChunk",
    "ConversationTurn",
    "ChunkSummary",
    "MapOutcome",
    "MapResult",
    "SummarizationResult",
    "SummarizationState",
]
