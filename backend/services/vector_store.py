"""Owner-scoped vector stores: Supabase pgvector and an in-memory numpy store."""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
from supabase import create_client, Client

from models.chunk import Chunk, ScoredChunk
from models.document import DocumentSummary
from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)

# PostgREST default max-rows
LIST_PAGE_SIZE = 1000


class VectorStore(ABC):
    """
    Contract for the chunk store.

    Every operation is scoped to one owner; rows belonging to other owners
    are never returned, grouped or deleted.
    """

    @abstractmethod
    def insert(self, chunk: Chunk) -> None:
        """Store one embedded chunk (owner, heading, content, vector, source file)."""

    @abstractmethod
    def query_nearest(self, owner_id: str, embedding: List[float], limit: int) -> List[ScoredChunk]:
        """Return at most `limit` of the owner's chunks, by ascending cosine distance."""

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> List[DocumentSummary]:
        """Return the owner's source files with per-file chunk counts, newest first."""

    @abstractmethod
    def delete_by_source_file(self, owner_id: str, source_file: str) -> int:
        """Delete every chunk of one source file for the owner; returns the number removed."""

    @staticmethod
    def _validate_query(embedding: List[float], limit: int) -> None:
        if embedding is None or len(embedding) == 0:
            raise ValueError("Query embedding cannot be empty")
        if limit <= 0:
            raise ValueError("limit must be positive")


def group_by_source_file(rows: Iterable[Dict[str, Any]]) -> List[DocumentSummary]:
    """Collapse chunk rows into one DocumentSummary per source file."""
    grouped: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        source_file = row["source_file"]
        entry = grouped.get(source_file)
        if entry is None:
            entry = grouped[source_file] = {
                "count": 0,
                "title": None,
                "first_position": None,
                "created_at": None,
            }

        entry["count"] += 1

        position = row.get("position")
        if entry["first_position"] is None or (position is not None and position < entry["first_position"]):
            entry["first_position"] = position
            entry["title"] = row.get("heading")

        created_at = row.get("created_at")
        if created_at is not None and (entry["created_at"] is None or created_at > entry["created_at"]):
            entry["created_at"] = created_at

    summaries = [
        DocumentSummary(
            source_file=source_file,
            title=entry["title"],
            chunks_count=entry["count"],
            created_at=entry["created_at"],
        )
        for source_file, entry in grouped.items()
    ]
    summaries.sort(
        key=lambda summary: summary.created_at or datetime.min.replace(tzinfo=timezone.utc),
        reverse=True,
    )
    return summaries


class SupabaseVectorStore(VectorStore):
    """
    Chunk store backed by Supabase pgvector.

    Expects a `document_chunks` table and a `match_owner_chunks` RPC:

        CREATE TABLE document_chunks (
          id bigserial PRIMARY KEY,
          owner_id text NOT NULL,
          chunk_id text NOT NULL,
          heading text,
          content text NOT NULL,
          embedding vector(768) NOT NULL,
          source_file text NOT NULL,
          position int NOT NULL,
          total_chunks int NOT NULL,
          created_at timestamptz DEFAULT now()
        );

        CREATE OR REPLACE FUNCTION match_owner_chunks(
          p_owner_id text, query_embedding vector(768), match_count int
        )
        RETURNS TABLE (chunk_id text, owner_id text, heading text, content text,
                       source_file text, position int, total_chunks int, distance float)
        LANGUAGE sql STABLE AS $$
          SELECT chunk_id, owner_id, heading, content, source_file, position, total_chunks,
                 embedding <=> query_embedding AS distance
          FROM document_chunks
          WHERE owner_id = p_owner_id
          ORDER BY embedding <=> query_embedding
          LIMIT match_count;
        $$;
    """

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = "document_chunks",
        match_function: str = "match_owner_chunks",
        page_size: int = LIST_PAGE_SIZE
    ):
        """
        Initialize the vector store with Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Name of the table storing chunks
            match_function: Name of the nearest-neighbour RPC
            page_size: Rows fetched per request when listing documents

        Raises:
            ValueError: If Supabase credentials are missing or page_size is not positive
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
        if page_size <= 0:
            raise ValueError("page_size must be positive")

        self.table_name = table_name
        self.match_function = match_function
        self.page_size = page_size
        self.client: Client = create_client(supabase_url, supabase_key)

        logger.info(f"Initialized SupabaseVectorStore with table: {table_name}")

    def insert(self, chunk: Chunk) -> None:
        if not chunk.embedding:
            raise ValueError("Chunk must be embedded before it is stored")

        record = {
            "owner_id": chunk.owner_id,
            "chunk_id": chunk.chunk_id,
            "heading": chunk.heading,
            "content": chunk.content,
            "embedding": list(chunk.embedding),
            "source_file": chunk.source_file,
            "position": chunk.position,
            "total_chunks": chunk.total_chunks,
        }

        try:
            self.client.table(self.table_name).insert(record).execute()
            logger.debug(f"Stored chunk {chunk.chunk_id} for owner {chunk.owner_id}")
        except Exception as e:
            error_msg = f"Failed to insert chunk {chunk.chunk_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

    def query_nearest(self, owner_id: str, embedding: List[float], limit: int) -> List[ScoredChunk]:
        self._validate_query(embedding, limit)

        try:
            response = self.client.rpc(
                self.match_function,
                {
                    "p_owner_id": owner_id,
                    "query_embedding": list(embedding),
                    "match_count": limit
                }
            ).execute()
        except Exception as e:
            error_msg = f"Failed to search vector store: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

        scored_chunks = []
        for row in response.data or []:
            if row.get("owner_id", owner_id) != owner_id:
                continue
            chunk = Chunk(
                chunk_id=row["chunk_id"],
                content=row["content"],
                position=row.get("position", 0),
                total_chunks=row.get("total_chunks", 0),
                source_file=row["source_file"],
                owner_id=owner_id,
                heading=row.get("heading"),
            )
            scored_chunks.append(ScoredChunk(chunk=chunk, distance=float(row["distance"])))

        scored_chunks.sort(key=lambda scored: scored.distance)
        logger.debug(f"Found {len(scored_chunks)} chunks for owner {owner_id}")
        return scored_chunks[:limit]

    def list_by_owner(self, owner_id: str) -> List[DocumentSummary]:
        rows = []
        start = 0
        while True:
            page = self._fetch_owner_rows(owner_id, start)
            for row in page:
                created_at = row.get("created_at")
                if isinstance(created_at, str):
                    created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
                rows.append({**row, "created_at": created_at})

            if len(page) < self.page_size:
                break
            start += self.page_size

        logger.debug(f"Listed {len(rows)} chunk rows for owner {owner_id}")
        return group_by_source_file(rows)

    def _fetch_owner_rows(self, owner_id: str, start: int) -> List[Dict[str, Any]]:
        """One page of the owner's rows; PostgREST caps unranged selects."""
        try:
            response = (
                self.client.table(self.table_name)
                .select("source_file, heading, position, created_at")
                .eq("owner_id", owner_id)
                .order("id")
                .range(start, start + self.page_size - 1)
                .execute()
            )
        except Exception as e:
            error_msg = f"Failed to list documents: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e
        return response.data or []

    def delete_by_source_file(self, owner_id: str, source_file: str) -> int:
        try:
            response = (
                self.client.table(self.table_name)
                .delete()
                .eq("owner_id", owner_id)
                .eq("source_file", source_file)
                .execute()
            )
        except Exception as e:
            error_msg = f"Failed to delete {source_file}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

        deleted = len(response.data or [])
        logger.info(f"Deleted {deleted} chunks of {source_file} for owner {owner_id}")
        return deleted


class InMemoryVectorStore(VectorStore):
    """Process-local chunk store using numpy cosine distance."""

    def __init__(self):
        self._rows: List[Dict[str, Any]] = []
        self._lock = threading.Lock()
        logger.info("Initialized InMemoryVectorStore")

    def insert(self, chunk: Chunk) -> None:
        if not chunk.embedding:
            raise ValueError("Chunk must be embedded before it is stored")

        with self._lock:
            self._rows.append({
                "chunk": chunk,
                "vector": np.asarray(chunk.embedding, dtype=float),
                "created_at": datetime.now(timezone.utc),
            })

    def query_nearest(self, owner_id: str, embedding: List[float], limit: int) -> List[ScoredChunk]:
        self._validate_query(embedding, limit)
        query = np.asarray(embedding, dtype=float)

        with self._lock:
            rows = [row for row in self._rows if row["chunk"].owner_id == owner_id]

        scored = [
            ScoredChunk(chunk=row["chunk"], distance=self._cosine_distance(query, row["vector"]))
            for row in rows
        ]
        # sorted() is stable, so equal distances keep insertion order
        scored = sorted(scored, key=lambda item: item.distance)
        return scored[:limit]

    def list_by_owner(self, owner_id: str) -> List[DocumentSummary]:
        with self._lock:
            rows = [
                {
                    "source_file": row["chunk"].source_file,
                    "heading": row["chunk"].heading,
                    "position": row["chunk"].position,
                    "created_at": row["created_at"],
                }
                for row in self._rows
                if row["chunk"].owner_id == owner_id
            ]
        return group_by_source_file(rows)

    def delete_by_source_file(self, owner_id: str, source_file: str) -> int:
        with self._lock:
            kept = [
                row for row in self._rows
                if not (row["chunk"].owner_id == owner_id and row["chunk"].source_file == source_file)
            ]
            deleted = len(self._rows) - len(kept)
            self._rows = kept

        logger.info(f"Deleted {deleted} chunks of {source_file} for owner {owner_id}")
        return deleted

    def count(self) -> int:
        with self._lock:
            return len(self._rows)

    @staticmethod
    def _cosine_distance(query: np.ndarray, vector: np.ndarray) -> float:
        if query.shape != vector.shape:
            raise ValueError(
                f"Embedding dimension mismatch: query {query.shape[0]}, stored {vector.shape[0]}"
            )
        norm = float(np.linalg.norm(query) * np.linalg.norm(vector))
        if norm == 0.0:
            return 1.0
        return 1.0 - float(np.dot(query, vector)) / norm
