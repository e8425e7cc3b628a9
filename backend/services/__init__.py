"""Services for the Starlight document assistant."""
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine, split_text
from .embedding_model import EmbeddingModel, EmbeddingError
from .vector_store import VectorStore, SupabaseVectorStore, InMemoryVectorStore
from .query_classifier import QueryClassifier, Classification
from .retrieval_engine import RetrievalEngine
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .direct_answerer import DirectAnswerer
from .map_reduce_summarizer import MapReduceSummarizer
from .chat_service import ChatService, ChatResult
from .ingestion_service import IngestionService, IngestionResult

__all__ = ['DocumentLoader', 'ChunkingEngine', 'split_text', 'EmbeddingModel', 'EmbeddingError', 'VectorStore', 'SupabaseVectorStore', 'InMemoryVectorStore', 'QueryClassifier', 'Classification', 'RetrievalEngine', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'DirectAnswerer', 'MapReduceSummarizer', 'ChatService', 'ChatResult', 'IngestionService', 'IngestionResult']
