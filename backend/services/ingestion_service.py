"""Document ingestion: chunk, embed and store one upload at a time."""
import dataclasses
import logging
from dataclasses import dataclass
from typing import List

from models.chunk import Chunk
from models.document import DocumentSummary, RawDocument
from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel, EmbeddingError
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """Chunks stored for one upload."""
    source_file: str
    chunks: List[Chunk]

    @property
    def chunks_count(self) -> int:
        return len(self.chunks)


class IngestionService:
    """Turns extracted documents into stored, embedded chunks."""

    def __init__(
        self,
        chunking_engine: ChunkingEngine,
        embedding_model: EmbeddingModel,
        vector_store: VectorStore
    ):
        self.chunking_engine = chunking_engine
        self.embedding_model = embedding_model
        self.vector_store = vector_store

    def ingest(self, document: RawDocument) -> IngestionResult:
        """
        Chunk a document, embed every chunk, then store them in position order.

        Nothing is stored until every chunk has an embedding. If the vector
        store fails partway, the chunks already stored for the file are
        removed before the error propagates.

        Args:
            document: Extracted document of one owner

        Returns:
            IngestionResult with the stored chunks

        Raises:
            ValueError: If the document has no text or yields no chunks
            EmbeddingError: If a chunk cannot be embedded
            RuntimeError: If the vector store rejects a chunk
        """
        if not document.text or not document.text.strip():
            raise ValueError("Could not extract text from file")

        chunks = self.chunking_engine.split_text(
            document.text,
            metadata={
                "source": document.filename,
                "source_id": f"{document.owner_id}-{document.filename}",
                "mime_type": document.media_type,
                "owner_id": document.owner_id,
            },
        )
        if not chunks:
            raise ValueError("Could not produce chunks from the document")

        embedded_chunks = []
        for chunk in chunks:
            embedding = self.embedding_model.embed_text(chunk.content)
            if not embedding:
                raise EmbeddingError(f"Empty embedding for chunk {chunk.chunk_id}")
            embedded_chunks.append(dataclasses.replace(chunk, embedding=embedding))

        stored = []
        try:
            for embedded in embedded_chunks:
                self.vector_store.insert(embedded)
                stored.append(embedded)
        except Exception:
            if stored:
                self._discard_partial(document, len(stored))
            raise

        logger.info(
            f"Ingested {document.filename}: {len(stored)} chunks",
            extra={"owner_id": document.owner_id, "source_file": document.filename}
        )
        return IngestionResult(source_file=document.filename, chunks=stored)

    def _discard_partial(self, document: RawDocument, stored_count: int) -> None:
        """Remove the chunks of an upload whose insertion stopped partway."""
        logger.error(
            f"Storing {document.filename} failed after {stored_count} chunks, removing them",
            extra={"owner_id": document.owner_id, "source_file": document.filename}
        )
        try:
            self.vector_store.delete_by_source_file(document.owner_id, document.filename)
        except Exception as e:
            logger.error(f"Could not remove partial chunks of {document.filename}: {str(e)}")

    def list_documents(self, owner_id: str) -> List[DocumentSummary]:
        return self.vector_store.list_by_owner(owner_id)

    def delete_document(self, owner_id: str, source_file: str) -> int:
        """Remove every chunk of a source file; returns the number deleted."""
        return self.vector_store.delete_by_source_file(owner_id, source_file)
