import threading

import pytest

from statement_categorizer.core.rate_limit import RateLimiter
from statement_categorizer.core.settings import Settings
from statement_categorizer.integration.ai_client import AIClientError
from statement_categorizer.integration.store import InMemoryCategoryStore
from statement_categorizer.models import Transaction


class FakeAIClient:
    """AI client double with call counters and canned answers."""

    def __init__(
        self,
        answer: str = "Shopping",
        embeddings: dict[str, list[float]] | None = None,
        error: Exception | None = None,
        embedding_error: Exception | None = None,
    ):
        self.answer = answer
        self.embeddings = embeddings or {}
        self.error = error
        self.embedding_error = embedding_error
        self.categorize_calls = 0
        self.embedding_calls: list[str] = []
        self._lock = threading.Lock()

    def categorize(self, transaction: Transaction) -> Transaction:
        with self._lock:
            self.categorize_calls += 1
        if self.error:
            raise self.error
        return transaction.model_copy(update={"category": self.answer})

    def get_embedding(self, text: str) -> list[float]:
        with self._lock:
            self.embedding_calls.append(text)
        if self.embedding_error:
            raise self.embedding_error
        if text not in self.embeddings:
            raise AIClientError(f"no embedding for {text!r}")
        return self.embeddings[text]


@pytest.fixture
def store() -> InMemoryCategoryStore:
    return InMemoryCategoryStore()


@pytest.fixture
def fast_limiter() -> RateLimiter:
    return RateLimiter(requests_per_minute=1000, sleep=lambda seconds: None)


@pytest.fixture
def settings() -> Settings:
    return Settings(semantic_enabled=False, ai_timeout_seconds=5)
