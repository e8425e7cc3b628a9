"""Document data models."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class RawDocument:
    """Extracted plain text of an upload, alive only during ingestion."""
    owner_id: str
    filename: str
    text: str
    media_type: str


@dataclass
class DocumentSummary:
    """One stored source file with the number of chunks it was split into."""
    source_file: str
    title: Optional[str]
    chunks_count: int
    created_at: Optional[datetime] = None
