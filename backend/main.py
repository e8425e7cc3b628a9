"""Main entry point for the Starlight document assistant API."""
import logging
from typing import Optional

from fastapi import FastAPI, File, Header, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from config import PORT, LOG_LEVEL, LOG_FORMAT, CORS_ORIGINS, SUPABASE_URL, SUPABASE_KEY
from logger import setup_logging
from models.api import (
    ChatRequest,
    ChatResponse,
    ChunkStructure,
    ChunkSummaryModel,
    DeleteResponse,
    DocumentEntry,
    DocumentListResponse,
    UploadResponse,
)
from models.conversation import ConversationTurn
from services.chat_service import ChatService
from services.chunking_engine import ChunkingEngine
from services.direct_answerer import DirectAnswerer
from services.document_loader import DocumentLoader
from services.embedding_model import EmbeddingModel, EmbeddingError
from services.ingestion_service import IngestionService
from services.llm_client import LLMClient, LLMClientError
from services.map_reduce_summarizer import MapReduceSummarizer
from services.query_classifier import QueryClassifier
from services.retrieval_engine import RetrievalEngine
from services.vector_store import InMemoryVectorStore, SupabaseVectorStore, VectorStore

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Starlight Document Assistant",
    description="Upload documents and ask questions answered from their contents",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
document_loader: DocumentLoader = None
ingestion_service: IngestionService = None
chat_service: ChatService = None


@app.on_event("startup")
async def startup_event():
    """Create the provider clients once and wire them into the pipeline."""
    global document_loader, ingestion_service, chat_service

    if LOG_FORMAT == "json":
        setup_logging(LOG_LEVEL)

    logger.info("Initializing Starlight services...")

    try:
        embedding_model = EmbeddingModel()
        llm_client = LLMClient()

        vector_store: VectorStore
        if SUPABASE_URL and SUPABASE_KEY:
            vector_store = SupabaseVectorStore()
        else:
            logger.warning("Supabase is not configured, chunks are kept in memory only")
            vector_store = InMemoryVectorStore()

        document_loader = DocumentLoader()
        ingestion_service = IngestionService(ChunkingEngine(), embedding_model, vector_store)
        chat_service = ChatService(
            classifier=QueryClassifier(),
            retrieval_engine=RetrievalEngine(vector_store, embedding_model),
            direct_answerer=DirectAnswerer(llm_client),
            summarizer=MapReduceSummarizer(llm_client),
        )

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


def _require_owner(owner_id: Optional[str]) -> str:
    if not owner_id or not owner_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return owner_id.strip()


def _provider_unavailable(e: Exception) -> HTTPException:
    """Structured 503 for generation and embedding failures."""
    if isinstance(e, LLMClientError):
        error = {"code": e.error.code, "message": e.error.message, "details": e.error.details}
    else:
        error = {"code": "EMBEDDING_ERROR", "message": str(e), "details": {}}
    return HTTPException(status_code=503, detail={"error": error})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Starlight Document Assistant API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "starlight-document-assistant",
        "version": "1.0.0"
    }


@app.post("/documents/upload", response_model=UploadResponse, status_code=201)
def upload_document(
    document: UploadFile = File(...),
    x_user_id: Optional[str] = Header(None)
) -> UploadResponse:
    """
    Extract, chunk, embed and store an uploaded PDF or text file.

    Returns:
        UploadResponse with the chunk count and the heading of every chunk
    """
    owner_id = _require_owner(x_user_id)

    try:
        content = document.file.read()
        raw_document = document_loader.load(
            owner_id=owner_id,
            filename=document.filename or "upload",
            content=content,
            media_type=document.content_type,
        )
        result = ingestion_service.ingest(raw_document)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EmbeddingError as e:
        logger.error(f"Embedding error during upload: {e}")
        raise _provider_unavailable(e)
    except Exception as e:
        logger.error(f"Unexpected error processing upload: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during file processing.")

    return UploadResponse(
        message="File processed and embeddings stored successfully.",
        chunks_count=result.chunks_count,
        structure=[
            ChunkStructure(heading=chunk.heading, chunk_index=chunk.position)
            for chunk in result.chunks
        ],
    )


@app.get("/documents", response_model=DocumentListResponse)
def list_documents(x_user_id: Optional[str] = Header(None)) -> DocumentListResponse:
    """List the caller's stored files with their chunk counts."""
    owner_id = _require_owner(x_user_id)

    try:
        summaries = ingestion_service.list_documents(owner_id)
    except Exception as e:
        logger.error(f"Error fetching documents: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error fetching documents.")

    return DocumentListResponse(documents=[
        DocumentEntry(
            source_file=summary.source_file,
            title=summary.title,
            chunks_count=summary.chunks_count,
            created_at=summary.created_at,
        )
        for summary in summaries
    ])


@app.delete("/documents/{source_file:path}", response_model=DeleteResponse)
def delete_document(source_file: str, x_user_id: Optional[str] = Header(None)) -> DeleteResponse:
    """Delete every chunk of one of the caller's files."""
    owner_id = _require_owner(x_user_id)

    try:
        deleted = ingestion_service.delete_document(owner_id, source_file)
    except Exception as e:
        logger.error(f"Error deleting document: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error deleting document.")

    if deleted == 0:
        raise HTTPException(status_code=404, detail="Document not found or access denied.")

    return DeleteResponse(
        message="Document deleted successfully.",
        deleted_chunks=deleted,
        source_file=source_file,
    )


@app.post("/chat", response_model=ChatResponse)
def chat_endpoint(request: ChatRequest, x_user_id: Optional[str] = Header(None)) -> ChatResponse:
    """
    Answer a question from the caller's documents.

    Summary-style questions go through map-reduce summarization over a wide
    retrieval; other questions are answered directly from a narrow one.
    """
    owner_id = _require_owner(x_user_id)
    logger.info(f"Processing chat message: {request.message[:100]}...")

    history = [
        ConversationTurn(user=turn.user, assistant=turn.assistant)
        for turn in request.conversation_history
        if turn.user
    ]

    try:
        result = chat_service.classify_and_answer(request.message, owner_id, history)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (LLMClientError, EmbeddingError) as e:
        logger.error(f"Provider error during chat: {e}")
        raise _provider_unavailable(e)
    except Exception as e:
        logger.error(f"Unexpected error processing chat: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during chat processing.")

    chunk_summaries = None
    if result.chunk_summaries is not None:
        chunk_summaries = [
            ChunkSummaryModel(
                index=summary.index,
                heading=summary.heading,
                summary=summary.summary,
                original_length=summary.original_length,
                relevant=summary.relevant,
            )
            for summary in result.chunk_summaries
        ]

    return ChatResponse(
        answer=result.answer,
        chunk_summaries=chunk_summaries,
        route=result.route,
        chunks_retrieved=result.chunks_retrieved,
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Starlight Document Assistant API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
