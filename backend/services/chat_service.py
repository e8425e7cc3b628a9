"""Chat orchestration: classify, retrieve, then answer directly or via map-reduce."""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from models.conversation import ConversationTurn
from models.summary import ChunkSummary
from services.direct_answerer import DirectAnswerer
from services.map_reduce_summarizer import MapReduceSummarizer
from services.query_classifier import QueryClassifier
from services.retrieval_engine import RetrievalEngine
from config import HISTORY_WINDOW

logger = logging.getLogger(__name__)

NO_RESULTS_ANSWER = (
    "I couldn't find anything relevant in your documents to answer that question. "
    "Could you rephrase it, or ask about another topic covered by your files?"
)


@dataclass
class ChatResult:
    """Answer to one chat message."""
    answer: str
    route: str
    chunks_retrieved: int
    chunk_summaries: Optional[List[ChunkSummary]] = None


def recent_history(
    history: Optional[Sequence[ConversationTurn]],
    window: int = HISTORY_WINDOW
) -> List[ConversationTurn]:
    """Keep the last `window` turns that carry a user utterance."""
    turns = [turn for turn in (history or []) if turn.user]
    if window <= 0:
        return []
    return turns[-window:]


class ChatService:
    """Answers a user's message from that user's own documents."""

    def __init__(
        self,
        classifier: QueryClassifier,
        retrieval_engine: RetrievalEngine,
        direct_answerer: DirectAnswerer,
        summarizer: MapReduceSummarizer,
        history_window: int = HISTORY_WINDOW
    ):
        self.classifier = classifier
        self.retrieval_engine = retrieval_engine
        self.direct_answerer = direct_answerer
        self.summarizer = summarizer
        self.history_window = history_window

    def classify_and_answer(
        self,
        message: str,
        owner_id: str,
        history: Optional[Sequence[ConversationTurn]] = None
    ) -> ChatResult:
        """
        Answer one chat message.

        Args:
            message: Raw user message
            owner_id: Owner whose documents are searched
            history: Caller-supplied conversation, oldest first (read-only)

        Returns:
            ChatResult; a fixed "nothing relevant" answer when retrieval finds nothing

        Raises:
            ValueError: If the message is empty
            EmbeddingError: If the message cannot be embedded
            LLMClientError: If any generation call fails
        """
        if not message or not message.strip():
            raise ValueError("Message is required")

        classification = self.classifier.classify(message)
        chunks = self.retrieval_engine.retrieve(owner_id, message, classification.retrieval_limit)

        if not chunks:
            logger.info(f"No relevant chunks for owner {owner_id}, skipping generation")
            return ChatResult(
                answer=NO_RESULTS_ANSWER,
                route=classification.route,
                chunks_retrieved=0,
            )

        if classification.summarization_requested:
            result = self.summarizer.summarize(message, chunks)
            return ChatResult(
                answer=result.summary,
                route=classification.route,
                chunks_retrieved=len(chunks),
                chunk_summaries=result.chunk_summaries,
            )

        answer = self.direct_answerer.answer(
            message,
            chunks,
            recent_history(history, self.history_window),
        )
        return ChatResult(
            answer=answer,
            route=classification.route,
            chunks_retrieved=len(chunks),
        )
