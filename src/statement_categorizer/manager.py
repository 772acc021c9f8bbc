import threading
from collections.abc import Sequence

from statement_categorizer.core.rate_limit import RateLimiter
from statement_categorizer.core.settings import Settings
from statement_categorizer.domain.categories import UNCATEGORIZED
from statement_categorizer.integration.ai_client import AIClient, OpenAIClient
from statement_categorizer.integration.prompts import allowed_categories
from statement_categorizer.integration.store import CategoryStore, YamlCategoryStore
from statement_categorizer.logger import get_logger
from statement_categorizer.models import CategorizationResult, Category, CategoryConfig, Transaction
from statement_categorizer.strategies.ai import AIStrategy, AIStrategyState
from statement_categorizer.strategies.base import CategorizationStrategy
from statement_categorizer.strategies.direct_mapping import DirectMappingStrategy
from statement_categorizer.strategies.keyword import KeywordStrategy
from statement_categorizer.strategies.results import StrategyResult, StrategyResults
from statement_categorizer.strategies.semantic import SemanticStrategy

logger = get_logger(__name__)

# Winners from these strategies are written back as direct mappings.
LEARNING_STRATEGIES = frozenset({KeywordStrategy.name, AIStrategy.name})


class CategorizerNotConfiguredError(ValueError):
    """Raised when a categorization helper is called without a categorizer."""


class Categorizer:
    """
    Runs the strategy chain DirectMapping -> Keyword -> Semantic -> AI and
    returns the first match. Keyword and AI matches are learned as direct
    mappings and persisted right away.
    """

    def __init__(
        self,
        store: CategoryStore,
        ai_client: AIClient | None = None,
        *,
        settings: Settings | None = None,
        rate_limiter: RateLimiter | None = None,
        strategies: Sequence[CategorizationStrategy] | None = None,
    ):
        self.store = store
        self.ai_client = ai_client
        self.settings = settings or Settings()
        self.auto_learn = self.settings.auto_learn

        self._save_lock = threading.Lock()
        self._creditors_dirty = False
        self._debtors_dirty = False

        self.direct = DirectMappingStrategy(store)
        self.keyword = KeywordStrategy(store)

        semantic_client = ai_client if self.settings.semantic_enabled else None
        self.semantic = SemanticStrategy(
            semantic_client,
            self.keyword.categories,
            threshold=self.settings.semantic_threshold,
        )

        self.rate_limiter = rate_limiter or RateLimiter(self.settings.ai_requests_per_minute)
        self.ai = AIStrategy(
            ai_client,
            categories=[config.name for config in self.keyword.categories],
            rate_limiter=self.rate_limiter,
            timeout=float(self.settings.ai_timeout_seconds),
        )
        self._sync_client_categories()

        if strategies is None:
            strategies = (self.direct, self.keyword, self.semantic, self.ai)
        self.strategies: tuple[CategorizationStrategy, ...] = tuple(strategies)

        logger.info(
            "[CATEGORIZER] Ready with strategies: %s (AI %s)",
            ", ".join(strategy.name for strategy in self.strategies),
            self.ai.state.value,
        )

    def categorize(self, transaction: Transaction) -> Category:
        result = self.classify(transaction)
        if result is None:
            return Category.uncategorized()
        return result.category

    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        """
        Full result of the first matching strategy, or None when nothing matched.
        Strategy failures are logged and treated as no match.
        """
        if not transaction.party_name.strip():
            logger.debug("[CATEGORIZER] Empty party name, skipping strategies")
            return None

        outcomes = StrategyResults()
        for strategy in self.strategies:
            try:
                result = strategy.classify(transaction)
            except Exception as exc:
                logger.warning(
                    "[CATEGORIZER] %s strategy failed for '%s': %s",
                    strategy.name,
                    transaction.party_name,
                    exc,
                    extra={"strategy": strategy.name, "party": transaction.party_name},
                )
                outcomes.add(StrategyResult(strategy=strategy.name, error=exc))
                continue

            if result is not None and not result.category.name.strip():
                result = None
            outcomes.add(StrategyResult.from_classification(strategy.name, result))
            if result is None:
                continue

            logger.debug(
                "[CATEGORIZER] %s -> '%s' via %s (%s)",
                transaction.party_name,
                result.category.name,
                strategy.name,
                outcomes.summary(),
                extra={
                    "strategy": strategy.name,
                    "party": transaction.party_name,
                    "category": result.category.name,
                    "score": result.confidence,
                },
            )
            if strategy.name in LEARNING_STRATEGIES:
                self._learn(transaction, result.category.name)
            return result

        logger.debug(
            "[CATEGORIZER] No match for '%s' (%s)",
            transaction.party_name,
            outcomes.summary(),
            extra={"party": transaction.party_name, "category": UNCATEGORIZED},
        )
        errors = outcomes.errors()
        if errors:
            logger.info(
                "[CATEGORIZER] '%s' left uncategorized after errors: %s",
                transaction.party_name,
                "; ".join(errors),
                extra={"party": transaction.party_name},
            )
        return None

    def _learn(self, transaction: Transaction, category_name: str) -> None:
        if not self.auto_learn:
            return

        if transaction.is_debtor:
            changed = self.update_debtor_mapping(transaction.party_name, category_name)
        else:
            changed = self.update_creditor_mapping(transaction.party_name, category_name)
        if not changed:
            return

        logger.info(
            "[CATEGORIZER] Learned '%s' -> '%s'",
            transaction.party_name,
            category_name,
            extra={
                "party": transaction.party_name,
                "category": category_name,
                "mapping_type": "debtor" if transaction.is_debtor else "creditor",
            },
        )
        try:
            self.save_mappings()
        except Exception as exc:
            logger.warning(
                "[CATEGORIZER] Failed to persist learned mapping for '%s': %s",
                transaction.party_name,
                exc,
                extra={"party": transaction.party_name, "category": category_name},
            )

    def update_creditor_mapping(self, party_name: str, category_name: str) -> bool:
        changed = self.direct.update_creditor_mapping(party_name, category_name)
        if changed:
            self._creditors_dirty = True
        return changed

    def update_debtor_mapping(self, party_name: str, category_name: str) -> bool:
        changed = self.direct.update_debtor_mapping(party_name, category_name)
        if changed:
            self._debtors_dirty = True
        return changed

    def get_creditor_category(self, party_name: str) -> str | None:
        return self.direct.get_creditor_category(party_name)

    def get_debtor_category(self, party_name: str) -> str | None:
        return self.direct.get_debtor_category(party_name)

    def category_names(self) -> list[str]:
        return allowed_categories([config.name for config in self.keyword.categories])

    def save_mappings(self) -> None:
        """Persist the mapping tables changed since the last save."""
        with self._save_lock:
            # Clear before snapshotting so an update landing mid-save stays dirty.
            if self._creditors_dirty:
                self._creditors_dirty = False
                try:
                    self.store.save_creditor_mappings(self.direct.creditor_mappings())
                except Exception:
                    self._creditors_dirty = True
                    raise
            if self._debtors_dirty:
                self._debtors_dirty = False
                try:
                    self.store.save_debtor_mappings(self.direct.debtor_mappings())
                except Exception:
                    self._debtors_dirty = True
                    raise

    def reload(self) -> None:
        self.direct.reload_mappings()
        self.keyword.reload_categories()
        categories: list[CategoryConfig] = list(self.keyword.categories)
        self.ai.set_categories([config.name for config in categories])
        self._sync_client_categories()
        if self.semantic.client is not None:
            self.semantic.reload_categories(categories)
        logger.info(
            "[CATEGORIZER] Reloaded mappings and %d categories",
            len(categories),
            extra={"count": len(categories)},
        )

    def _sync_client_categories(self) -> None:
        if isinstance(self.ai_client, OpenAIClient):
            self.ai_client.set_categories([config.name for config in self.keyword.categories])

    @property
    def ai_state(self) -> AIStrategyState:
        return self.ai.state

    def close(self) -> None:
        self.semantic.close()
        self.ai.close()


def categorize_transaction_with(categorizer: Categorizer | None, transaction: Transaction) -> Category:
    if categorizer is None:
        raise CategorizerNotConfiguredError("categorizer is not configured")
    return categorizer.categorize(transaction)


def build_categorizer(settings: Settings) -> Categorizer:
    store = YamlCategoryStore(
        settings.resolve_path(settings.categories_file),
        settings.resolve_path(settings.creditors_file),
        settings.resolve_path(settings.debtors_file),
        backup_enabled=settings.backup_enabled,
    )

    ai_client: AIClient | None = None
    if settings.ai_active:
        ai_client = OpenAIClient(
            api_key=settings.ai_api_key or "",
            model=settings.ai_model,
            embedding_model=settings.ai_embedding_model,
            base_url=settings.ai_base_url,
            timeout=float(settings.ai_timeout_seconds),
        )
        logger.info(
            "[CATEGORIZER] AI enabled: model=%s, base_url=%s",
            settings.ai_model,
            settings.ai_base_url or "default",
        )
    elif settings.ai_enabled:
        logger.warning("[CATEGORIZER] No AI API key found. AI and semantic strategies disabled.")

    return Categorizer(store, ai_client, settings=settings)

