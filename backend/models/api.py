"""Request and response schemas for the HTTP API."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ConversationTurnModel(BaseModel):
    """A previous exchange supplied by the client."""
    user: Optional[str] = None
    assistant: Optional[str] = None


class ChatRequest(BaseModel):
    """Chat request body."""
    message: str
    conversation_history: List[ConversationTurnModel] = Field(default_factory=list)


class ChunkSummaryModel(BaseModel):
    """Per-chunk condensation exposed for drill-down."""
    index: int
    heading: Optional[str] = None
    summary: str
    original_length: int
    relevant: bool


class ChatResponse(BaseModel):
    """Chat response body."""
    answer: str
    chunk_summaries: Optional[List[ChunkSummaryModel]] = None
    route: str
    chunks_retrieved: int


class ChunkStructure(BaseModel):
    """Heading and position of one stored chunk."""
    heading: Optional[str] = None
    chunk_index: int


class UploadResponse(BaseModel):
    """Upload response body."""
    message: str
    chunks_count: int
    structure: List[ChunkStructure]


class DocumentEntry(BaseModel):
    """A stored source file."""
    source_file: str
    title: Optional[str] = None
    chunks_count: int
    created_at: Optional[datetime] = None


class DocumentListResponse(BaseModel):
    """List of the caller's stored documents."""
    documents: List[DocumentEntry]


class DeleteResponse(BaseModel):
    """Delete response body."""
    message: str
    deleted_chunks: int
    source_file: str
