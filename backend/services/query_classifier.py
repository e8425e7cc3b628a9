"""
Query classifier for the Starlight document assistant.

Decides whether a chat message asks for broad coverage of the user's
documents (summaries, overviews, whole chapters) or is a targeted question,
and picks the retrieval depth for each route.
"""

from dataclasses import dataclass
import logging
import re
from typing import Iterable, Optional

from config import TARGETED_RETRIEVAL_LIMIT, SUMMARY_RETRIEVAL_LIMIT

logger = logging.getLogger(__name__)

SUMMARY_PATTERNS = (
    r"\bsummary\b",
    r"\bsummarise\b",
    r"\bsummarize\b",
    r"\bresumen\b",
    r"\bresumir\b",
    r"\bresumeme\b",
    r"\bresume\b",
    r"\boverview\b",
    r"\bchapter\s+\d+\b",
    r"\bcapítulo\s+\d+\b",
)


@dataclass
class Classification:
    """
    Result of query classification.

    Attributes:
        route: Either "summarization" or "targeted"
        retrieval_limit: Number of chunks to retrieve for this route
        matched_pattern: Pattern that triggered the summarization route, if any
    """
    route: str
    retrieval_limit: int
    matched_pattern: Optional[str] = None

    @property
    def summarization_requested(self) -> bool:
        return self.route == QueryClassifier.SUMMARIZATION


class QueryClassifier:
    """
    Keyword heuristic routing messages to the summarization or targeted path.

    The pattern list is configuration, not a contract: a missed summary
    request simply takes the targeted path.
    """

    SUMMARIZATION = "summarization"
    TARGETED = "targeted"

    def __init__(
        self,
        patterns: Iterable[str] = SUMMARY_PATTERNS,
        targeted_limit: int = TARGETED_RETRIEVAL_LIMIT,
        summary_limit: int = SUMMARY_RETRIEVAL_LIMIT
    ):
        self.patterns = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]
        self.targeted_limit = targeted_limit
        self.summary_limit = summary_limit

    def is_summarization_query(self, message: Optional[str]) -> bool:
        """True when any summary pattern matches the message."""
        return self._match(message) is not None

    def classify(self, message: Optional[str]) -> Classification:
        """
        Classify a chat message.

        Args:
            message: Raw user message

        Returns:
            Classification with route and retrieval limit
        """
        pattern = self._match(message)
        if pattern is None:
            logger.info(f"Classification: {self.TARGETED} (k={self.targeted_limit})")
            return Classification(route=self.TARGETED, retrieval_limit=self.targeted_limit)

        logger.info(f"Classification: {self.SUMMARIZATION} (k={self.summary_limit}, pattern={pattern})")
        return Classification(
            route=self.SUMMARIZATION,
            retrieval_limit=self.summary_limit,
            matched_pattern=pattern
        )

    def _match(self, message: Optional[str]) -> Optional[str]:
        if not message:
            return None
        for pattern in self.patterns:
            if pattern.search(message):
                return pattern.pattern
        return None
