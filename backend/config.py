"""Configuration management for the Starlight document assistant."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173"
).split(",")

# Model Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2")
EMBEDDING_DIMENSIONS = 768
GENERATION_MODEL = os.getenv("GENERATION_MODEL", "llama-3.1-8b-instant")

# Chunking Configuration (sizes in characters)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1200"))
CHUNK_OVERLAP_RATIO = 0.15
STRUCTURAL_BLOCK_SIZE_CAP = 2000
STRUCTURAL_BLOCK_OVERLAP_CAP = 200
MAX_HEADING_LENGTH = 160
MAX_CONTENT_HEADING_LENGTH = 90

# Retrieval Configuration
TARGETED_RETRIEVAL_LIMIT = 3
SUMMARY_RETRIEVAL_LIMIT = 15

# Conversation Configuration
HISTORY_WINDOW = 5  # most recent turns folded into prompts

# Summarization Configuration
MAP_MAX_WORKERS = int(os.getenv("MAP_MAX_WORKERS", "8"))
MAP_TEMPERATURE = 0.4
REDUCE_TEMPERATURE = 0.3

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
