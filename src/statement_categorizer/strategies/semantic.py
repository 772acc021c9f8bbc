import threading
from collections.abc import Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _pairwise_cosine

from statement_categorizer.integration.ai_client import AIClient
from statement_categorizer.logger import get_logger
from statement_categorizer.models import CategorizationResult, Category, CategoryConfig, Transaction

from statement_categorizer.strategies.base import CategorizationStrategy

logger = get_logger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.70


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors. 0.0 for empty, mismatched or zero vectors."""
    if len(a) == 0 or len(a) != len(b):
        return 0.0
    left = np.asarray(a, dtype=float).reshape(1, -1)
    right = np.asarray(b, dtype=float).reshape(1, -1)
    if not np.any(left) or not np.any(right):
        return 0.0
    return float(_pairwise_cosine(left, right)[0][0])


def category_text(config: CategoryConfig) -> str:
    if not config.keywords:
        return config.name
    return f"{config.name}: {', '.join(config.keywords)}"


class SemanticStrategy(CategorizationStrategy):
    """
    Matches transactions to categories by embedding similarity.

    Category embeddings are computed once on a background thread. Until that
    warm-up finishes the strategy reports no match instead of blocking.
    """

    name = "Semantic"

    def __init__(
        self,
        client: AIClient | None,
        categories: Sequence[CategoryConfig] = (),
        *,
        threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        start: bool = True,
    ):
        self.client = client
        self.threshold = threshold
        self._lock = threading.Lock()
        self._embeddings: dict[str, np.ndarray] = {}
        self._ready = threading.Event()
        self._stop = threading.Event()
        self._generation = 0
        self._thread: threading.Thread | None = None
        self._categories = list(categories)

        if start:
            self._start_warmup()

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        return self._ready.wait(timeout)

    def reload_categories(self, categories: Sequence[CategoryConfig]) -> None:
        """Drop the current embeddings and re-run the warm-up for ``categories``."""
        self._categories = list(categories)
        self._start_warmup()

    def close(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def _start_warmup(self) -> None:
        if self.client is None:
            logger.debug("[SEMANTIC] No AI client, strategy disabled")
            return

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._ready.clear()

        self._thread = threading.Thread(
            target=self._warmup,
            args=(generation, list(self._categories)),
            name="semantic-warmup",
            daemon=True,
        )
        self._thread.start()

    def _warmup(self, generation: int, categories: list[CategoryConfig]) -> None:
        client = self.client
        if client is None:
            return
        embeddings: dict[str, np.ndarray] = {}

        for config in categories:
            if self._stop.is_set() or generation != self._generation:
                logger.debug("[SEMANTIC] Warm-up interrupted")
                return
            if not config.name.strip():
                continue
            try:
                vector = client.get_embedding(category_text(config))
            except Exception as exc:
                logger.warning(
                    "[SEMANTIC] Failed to embed category '%s': %s",
                    config.name,
                    exc,
                    extra={"category": config.name},
                )
                continue
            embeddings[config.name] = np.asarray(vector, dtype=float)

        with self._lock:
            if generation != self._generation:
                return
            self._embeddings = embeddings
            self._ready.set()

        logger.info(
            "[SEMANTIC] Embedded %d categories",
            len(embeddings),
            extra={"strategy": self.name, "count": len(embeddings)},
        )

    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        if self.client is None or not self._ready.is_set():
            return None

        embeddings = self._embeddings
        if not embeddings:
            return None

        text = f"{transaction.party_name} {transaction.description}".strip()
        if not text:
            return None

        try:
            vector = self.client.get_embedding(text)
        except Exception as exc:
            logger.warning(
                "[SEMANTIC] Embedding failed for '%s': %s",
                transaction.party_name,
                exc,
                extra={"strategy": self.name, "party": transaction.party_name},
            )
            return None

        best_category, best_score = None, -1.0
        for category_name, category_vector in embeddings.items():
            score = cosine_similarity(vector, category_vector)
            if score > best_score:
                best_category, best_score = category_name, score

        if best_category is None or best_score < self.threshold:
            logger.debug(
                "[SEMANTIC] No category above %.2f for '%s' (best %.3f)",
                self.threshold,
                transaction.party_name,
                best_score,
                extra={"strategy": self.name, "party": transaction.party_name, "score": best_score},
            )
            return None

        logger.debug(
            "[SEMANTIC] '%s' -> '%s' (score %.3f)",
            transaction.party_name,
            best_category,
            best_score,
            extra={
                "strategy": self.name,
                "party": transaction.party_name,
                "category": best_category,
                "score": best_score,
            },
        )
        return CategorizationResult(
            category=Category.from_name(best_category),
            confidence=min(best_score, 1.0),
            source=self.name,
        )
