"""
Document Ingestion Script for the Starlight document assistant.

This script, for one owner:
1. Loads every PDF, text and markdown file of a directory
2. Optionally removes previously stored chunks of each file
3. Chunks the text with inferred headings
4. Generates embeddings using HuggingFace API
5. Stores everything in Supabase pgvector

Usage:
    python ingest_documents.py DOCS_DIR --owner USER_ID [--chunk-size 1200] [--replace]
"""
import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.document_loader import DocumentLoader, guess_media_type
from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel
from services.ingestion_service import IngestionService
from services.vector_store import SupabaseVectorStore
from config import HUGGINGFACE_API_KEY, SUPABASE_URL, SUPABASE_KEY, CHUNK_SIZE

logger = logging.getLogger(__name__)


def find_documents(directory: Path) -> List[Path]:
    """Supported files of a directory, sorted by name."""
    return sorted(
        path for path in directory.iterdir()
        if path.is_file() and guess_media_type(path.name)
    )


def ingest_directory(
    service: IngestionService,
    loader: DocumentLoader,
    files: List[Path],
    owner_id: str,
    replace: bool = False
) -> List[str]:
    """
    Ingest each file, continuing past failures.

    Returns:
        Names of the files that could not be ingested
    """
    total_chunks = 0
    failed = []

    for index, path in enumerate(files, start=1):
        logger.info(f"[{index}/{len(files)}] Processing {path.name}...")
        try:
            if replace:
                removed = service.delete_document(owner_id, path.name)
                if removed:
                    logger.info(f"  Removed {removed} previously stored chunks")

            document = loader.load(owner_id, path.name, path.read_bytes())
            result = service.ingest(document)
            total_chunks += result.chunks_count
            logger.info(f"  ✓ Stored {result.chunks_count} chunks")
        except Exception as e:
            logger.error(f"  ✗ Failed to ingest {path.name}: {str(e)}")
            failed.append(path.name)

    logger.info("=" * 60)
    logger.info(f"Files processed: {len(files) - len(failed)} of {len(files)}")
    logger.info(f"Total chunks stored: {total_chunks}")
    logger.info("=" * 60)
    return failed


def main(argv: Optional[List[str]] = None):
    """Main ingestion process."""
    parser = argparse.ArgumentParser(
        description="Ingest a directory of documents for one Starlight user"
    )
    parser.add_argument("directory", type=Path, help="Directory containing PDF, text or markdown files")
    parser.add_argument("--owner", required=True, help="Owner identifier the chunks belong to")
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=CHUNK_SIZE,
        help=f"Target chunk size in characters (default: {CHUNK_SIZE})"
    )
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Delete previously stored chunks of each file before ingesting it"
    )
    args = parser.parse_args(argv)

    if not args.directory.is_dir():
        logger.error(f"Not a directory: {args.directory}")
        sys.exit(1)

    files = find_documents(args.directory)
    if not files:
        logger.error(f"No PDF, text or markdown files found in {args.directory}")
        sys.exit(1)

    try:
        logger.info("=" * 60)
        logger.info(f"Ingesting {len(files)} files for owner {args.owner}")
        logger.info("=" * 60)

        embedding_model = EmbeddingModel(api_key=HUGGINGFACE_API_KEY)
        vector_store = SupabaseVectorStore(supabase_url=SUPABASE_URL, supabase_key=SUPABASE_KEY)
        service = IngestionService(ChunkingEngine(chunk_size=args.chunk_size), embedding_model, vector_store)

        logger.info("Warming up embedding model (may take 15-20 seconds on first run)...")
        embedding_model.warmup()

        failed = ingest_directory(service, DocumentLoader(), files, args.owner, replace=args.replace)
    except KeyboardInterrupt:
        logger.warning("\nIngestion interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"\nIngestion failed: {str(e)}", exc_info=True)
        sys.exit(1)

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
