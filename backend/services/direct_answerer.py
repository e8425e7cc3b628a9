"""Single-pass retrieval-augmented answering."""
import logging
from typing import List, Optional, Sequence

from models.chunk import ScoredChunk
from models.conversation import ConversationTurn
from services.llm_client import LLMClient

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


def format_history(turns: Sequence[ConversationTurn]) -> str:
    """Render conversation turns as alternating User/Assistant lines."""
    lines = []
    for turn in turns:
        if turn.user and turn.assistant:
            lines.append(f"User: {turn.user}\nAssistant: {turn.assistant}")
        elif turn.user:
            lines.append(f"User: {turn.user}")
    return "\n\n".join(lines)


class DirectAnswerer:
    """Answers targeted questions from the retrieved chunks in one generation call."""

    def __init__(self, llm_client: LLMClient):
        self.llm_client = llm_client

    def answer(
        self,
        message: str,
        chunks: List[ScoredChunk],
        history: Optional[Sequence[ConversationTurn]] = None
    ) -> str:
        """
        Generate an answer grounded in the retrieved chunks.

        Args:
            message: User question
            chunks: Retrieved chunks in retrieval order
            history: Already-windowed recent conversation turns

        Returns:
            Generated answer text

        Raises:
            LLMClientError: If the generation call fails (not retried here)
        """
        context = CONTEXT_SEPARATOR.join(scored.chunk.content for scored in chunks)
        prompt = self.build_prompt(message, context, format_history(history or []))

        logger.info(f"Answering directly from {len(chunks)} chunks (context length {len(context)})")
        response = self.llm_client.generate(prompt)
        return response.text.strip()

    @staticmethod
    def build_prompt(query: str, context: str, conversation_history: str = "") -> str:
        """
        Build the answer prompt.

        Args:
            query: User question
            context: Retrieved chunk contents joined with CONTEXT_SEPARATOR
            conversation_history: Formatted recent turns

        Returns:
            Complete prompt string
        """
        history_section = conversation_history or "None"

        return f"""You are Starlight, a friendly and efficient assistant for analysing the user's documents.

Instructions:
1. Base your answer on the provided context:
{context}

2. If the question is unrelated to the documents, answer kindly without mentioning them.
3. If the answer is not in the context, say so honestly, then offer what you know in general.
4. Be patient and encouraging. Reply in the same language as the user.

Conversation history:
{history_section}

User question:
"{query}"

Answer as Starlight:"""
