"""Retrieval engine for orchestrating query embedding and chunk retrieval."""
import logging
from typing import List
from models.chunk import ScoredChunk
from services.vector_store import VectorStore
from services.embedding_model import EmbeddingModel

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Embed a query and fetch the owner's nearest chunks."""

    def __init__(self, vector_store: VectorStore, embedding_model: EmbeddingModel):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorStore instance for similarity search
            embedding_model: EmbeddingModel instance for query embedding
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        logger.info("Initialized RetrievalEngine")

    def retrieve(self, owner_id: str, query: str, limit: int) -> List[ScoredChunk]:
        """
        Retrieve the owner's chunks closest to the query.

        Args:
            owner_id: Owner whose chunks are searched
            query: User question
            limit: Maximum number of chunks (chosen by the QueryClassifier)

        Returns:
            Chunks in ascending distance order; empty for an empty query or when
            the owner has nothing stored

        Raises:
            EmbeddingError: If the query cannot be embedded
            RuntimeError: If the vector store search fails
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        logger.debug(f"Embedding query: {query[:100]}...")
        query_embedding = self.embedding_model.embed_text(query)
        if not query_embedding:
            return []

        logger.debug(f"Searching for top {limit} chunks of owner {owner_id}")
        scored_chunks = self.vector_store.query_nearest(owner_id, query_embedding, limit)

        if not scored_chunks:
            logger.info("No chunks found for query")
            return []

        logger.info(
            f"Retrieved {len(scored_chunks)} chunks "
            f"(k={limit}, closest distance: {scored_chunks[0].distance:.3f})"
        )
        return scored_chunks
