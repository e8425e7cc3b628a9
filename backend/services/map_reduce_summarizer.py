"""
Map-reduce summarization over retrieved chunks.

The map phase condenses every retrieved chunk independently (concurrently,
in a thread pool) with respect to the user's question. Once every call has
settled, chunks tagged as carrying no relevant information are dropped and
the remaining condensations are synthesized by a single reduce call.

A failed map call aborts the whole request; it is never treated as an
irrelevant chunk.
"""
import concurrent.futures
import logging
import re
from typing import Iterable, List, Optional

from models.chunk import ScoredChunk
from models.summary import (
    MapOutcome,
    MapResult,
    SummarizationResult,
    SummarizationState,
)
from services.llm_client import LLMClient, LLMClientError, LLMError
from config import MAP_MAX_WORKERS, MAP_TEMPERATURE, REDUCE_TEMPERATURE

logger = logging.getLogger(__name__)

SENTINEL = "NO RELEVANT INFORMATION"
SENTINEL_PHRASES = (
    SENTINEL,
    "SIN INFORMACIÓN RELEVANTE",
)
NO_RELEVANT_CONTENT_ANSWER = (
    "I couldn't find information in your documents that is relevant to your question."
)

_DECORATION = re.compile(r"^[\s\"'*_.`]+|[\s\"'*_.!`]+$")


class MapReduceSummarizer:
    """Condenses many retrieved chunks into one coherent answer."""

    def __init__(
        self,
        llm_client: LLMClient,
        max_workers: int = MAP_MAX_WORKERS,
        map_temperature: float = MAP_TEMPERATURE,
        reduce_temperature: float = REDUCE_TEMPERATURE,
        sentinel_phrases: Iterable[str] = SENTINEL_PHRASES
    ):
        """
        Initialize the summarizer.

        Args:
            llm_client: Generation client shared by the map and reduce phases
            max_workers: Upper bound on concurrent map-phase calls
            map_temperature: Sampling temperature for per-chunk condensation
            reduce_temperature: Sampling temperature for the synthesis call
            sentinel_phrases: Replies meaning "this chunk is not relevant"
        """
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")

        self.llm_client = llm_client
        self.max_workers = max_workers
        self.map_temperature = map_temperature
        self.reduce_temperature = reduce_temperature
        self.sentinel_phrases = {phrase.upper() for phrase in sentinel_phrases}

    def summarize(self, question: str, chunks: List[ScoredChunk]) -> SummarizationResult:
        """
        Run the map and reduce phases.

        Args:
            question: Original user question
            chunks: Retrieved chunks in retrieval order

        Returns:
            SummarizationResult with the final text, every per-chunk
            condensation and the state the request ended in

        Raises:
            LLMClientError: If any map call or the reduce call fails
        """
        transitions = [SummarizationState.IDLE]
        if not chunks:
            return SummarizationResult(
                summary="",
                chunk_summaries=[],
                state=SummarizationState.IDLE,
                transitions=transitions,
            )

        transitions.append(SummarizationState.MAPPING)
        results = self._map(question, chunks)

        failures = [result for result in results if result.outcome == MapOutcome.FAILURE]
        if failures:
            raise self._map_failure(failures, len(results))

        chunk_summaries = [result.to_chunk_summary() for result in results]
        relevant = [result for result in results if result.outcome == MapOutcome.SUMMARY]
        logger.info(
            f"Map phase finished: {len(relevant)} relevant, "
            f"{len(results) - len(relevant)} without relevant information"
        )

        if not relevant:
            transitions.append(SummarizationState.NO_RELEVANT_CONTENT)
            return SummarizationResult(
                summary=NO_RELEVANT_CONTENT_ANSWER,
                chunk_summaries=chunk_summaries,
                state=SummarizationState.NO_RELEVANT_CONTENT,
                transitions=transitions,
            )

        transitions.append(SummarizationState.REDUCING)
        reduce_prompt = self.build_reduce_prompt(question, relevant)
        response = self.llm_client.generate(reduce_prompt, temperature=self.reduce_temperature)
        transitions.append(SummarizationState.DONE)
        logger.info(f"Reduce phase combined {len(relevant)} condensations")

        return SummarizationResult(
            summary=response.text.strip(),
            chunk_summaries=chunk_summaries,
            state=SummarizationState.DONE,
            transitions=transitions,
        )

    def is_sentinel(self, text: Optional[str]) -> bool:
        """True when a condensation says the chunk holds nothing relevant."""
        normalized = _DECORATION.sub("", text or "").upper()
        return not normalized or normalized in self.sentinel_phrases

    def _map(self, question: str, chunks: List[ScoredChunk]) -> List[MapResult]:
        """Condense every chunk concurrently and wait for all of them to settle."""
        total = len(chunks)
        workers = min(self.max_workers, total)

        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._condense, question, index, scored, total)
                for index, scored in enumerate(chunks)
            ]
            concurrent.futures.wait(futures)

        return [future.result() for future in futures]

    def _condense(self, question: str, index: int, scored: ScoredChunk, total: int) -> MapResult:
        chunk = scored.chunk
        prompt = self.build_map_prompt(question, chunk.content, index, total, chunk.heading)

        try:
            response = self.llm_client.generate(prompt, temperature=self.map_temperature)
        except Exception as e:
            logger.warning(f"Map call failed for passage {index + 1}/{total}: {e}")
            return MapResult(
                outcome=MapOutcome.FAILURE,
                index=index,
                heading=chunk.heading,
                original_length=len(chunk.content),
                error=e,
            )

        text = response.text.strip()
        if self.is_sentinel(text):
            return MapResult(
                outcome=MapOutcome.SENTINEL,
                index=index,
                heading=chunk.heading,
                original_length=len(chunk.content),
                summary=SENTINEL,
            )

        return MapResult(
            outcome=MapOutcome.SUMMARY,
            index=index,
            heading=chunk.heading,
            original_length=len(chunk.content),
            summary=text,
        )

    @staticmethod
    def _map_failure(failures: List[MapResult], total: int) -> LLMClientError:
        first = failures[0].error
        details = {
            "failed_passages": [failure.index + 1 for failure in failures],
            "total_passages": total,
            "original_error": str(first),
        }
        if isinstance(first, LLMClientError):
            details["first_error_code"] = first.error.code

        logger.error(
            f"Map phase failed for {len(failures)} of {total} passages",
            extra={"error_code": "MAP_PHASE_FAILED", "error_details": details}
        )
        error = LLMClientError(LLMError(
            code="MAP_PHASE_FAILED",
            message="Summarization failed while condensing passages.",
            details=details,
        ))
        error.__cause__ = first
        return error

    @staticmethod
    def build_map_prompt(
        question: str,
        content: str,
        index: int,
        total: int,
        heading: Optional[str] = None
    ) -> str:
        """Prompt asking for a 2-3 sentence, question-focused condensation of one chunk."""
        heading_note = f' (Heading: "{heading}")' if heading else ""
        return f"""You summarise text passages with respect to a question.
User question: "{question}"
Passage {index + 1} of {total}{heading_note}:
\"\"\"
{content}
\"\"\"
Summarise this passage in 2-3 sentences, focusing on what is most relevant to the question.
If it is not relevant, reply exactly "{SENTINEL}"."""

    @staticmethod
    def build_reduce_prompt(question: str, relevant: List[MapResult]) -> str:
        """Prompt asking to synthesize the relevant condensations, each tagged with its origin."""
        formatted = "\n\n".join(
            f"Summary of passage {result.index + 1}"
            f"{f' ({result.heading})' if result.heading else ''}:\n- {result.summary}"
            for result in relevant
        )
        return f"""The user asks: "{question}"
I analysed their documents and extracted the following relevant summaries:

{formatted}

Combine this information into one coherent, complete and easy to follow answer for the user.
Reply in the same language as the question."""
