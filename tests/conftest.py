"""Shared test doubles for the provider collaborators."""
import sys
import threading
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock

from services.embedding_model import EmbeddingModel
from services.llm_client import LLMResponse


def letter_histogram(text):
    """Deterministic 26-dimensional embedding: letter counts of the text."""
    if not text or not text.strip():
        return []
    vector = [0.0] * 26
    for char in text.lower():
        if "a" <= char <= "z":
            vector[ord(char) - ord("a")] += 1.0
    return vector


class FakeLLM:
    """Thread-safe generation double answering from a callable."""

    def __init__(self, respond):
        self.respond = respond
        self.calls = []
        self._lock = threading.Lock()

    def generate(self, prompt, temperature=None, top_p=None, model=None, max_tokens=1024):
        with self._lock:
            self.calls.append({"prompt": prompt, "temperature": temperature})
        text = self.respond(prompt)
        return LLMResponse(
            text=text,
            tokens_input=len(prompt.split()),
            tokens_output=len(text.split()),
            latency_ms=1,
            model_used="fake-model"
        )

    def prompts_containing(self, marker):
        return [call["prompt"] for call in self.calls if marker in call["prompt"]]


@pytest.fixture
def embedding_model():
    """EmbeddingModel double backed by letter histograms."""
    model = Mock(spec=EmbeddingModel)
    model.embed_text.side_effect = letter_histogram
    return model
