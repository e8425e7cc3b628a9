"""Map-reduce summarization data models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SummarizationState(str, Enum):
    """States of one map-reduce summarization request."""
    IDLE = "idle"
    MAPPING = "mapping"
    REDUCING = "reducing"
    DONE = "done"
    NO_RELEVANT_CONTENT = "no_relevant_content"


class MapOutcome(str, Enum):
    """Tag of a single map-phase result."""
    SUMMARY = "summary"
    SENTINEL = "sentinel"
    FAILURE = "failure"


@dataclass
class ChunkSummary:
    """Condensation of one retrieved chunk."""
    index: int
    heading: Optional[str]
    summary: str
    original_length: int
    relevant: bool = True


@dataclass
class MapResult:
    """Tagged outcome of one map-phase generation call."""
    outcome: MapOutcome
    index: int
    heading: Optional[str]
    original_length: int
    summary: Optional[str] = None
    error: Optional[Exception] = None

    def to_chunk_summary(self) -> ChunkSummary:
        return ChunkSummary(
            index=self.index,
            heading=self.heading,
            summary=self.summary or "",
            original_length=self.original_length,
            relevant=self.outcome == MapOutcome.SUMMARY,
        )


@dataclass
class SummarizationResult:
    """Final answer of a summarization request plus every per-chunk condensation."""
    summary: str
    chunk_summaries: List[ChunkSummary]
    state: SummarizationState
    transitions: List[SummarizationState] = field(default_factory=list)
