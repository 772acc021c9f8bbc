from collections.abc import Iterable
from dataclasses import dataclass

from statement_categorizer.domain.categories import is_uncategorized
from statement_categorizer.logger import get_logger
from statement_categorizer.manager import Categorizer
from statement_categorizer.models import Category, Transaction

logger = get_logger(__name__)


@dataclass
class CategorizationStats:
    total: int = 0
    successful: int = 0
    uncategorized: int = 0
    failed: int = 0

    @property
    def success_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.successful / self.total * 100.0

    def as_dict(self) -> dict[str, float]:
        return {
            "total": self.total,
            "successful": self.successful,
            "uncategorized": self.uncategorized,
            "failed": self.failed,
            "success_rate": round(self.success_rate, 2),
        }


def categorize_all(
    categorizer: Categorizer, transactions: Iterable[Transaction]
) -> tuple[list[Category], CategorizationStats]:
    """
    Categorize every transaction in order. A transaction whose categorization
    raises is counted as failed and gets the uncategorized category.
    """
    stats = CategorizationStats()
    categories: list[Category] = []

    for transaction in transactions:
        stats.total += 1
        try:
            category = categorizer.categorize(transaction)
        except Exception as exc:
            logger.error(
                "[BATCH] Failed to categorize '%s': %s",
                transaction.party_name,
                exc,
                extra={"party": transaction.party_name},
            )
            stats.failed += 1
            categories.append(Category.uncategorized())
            continue

        if is_uncategorized(category.name):
            stats.uncategorized += 1
        else:
            stats.successful += 1
        categories.append(category)

    logger.info(
        "[BATCH] Categorized %d transactions: %d successful, %d uncategorized, %d failed (%.1f%%)",
        stats.total,
        stats.successful,
        stats.uncategorized,
        stats.failed,
        stats.success_rate,
        extra={"count": stats.total},
    )
    return categories, stats
