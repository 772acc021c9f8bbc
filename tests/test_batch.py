from unittest.mock import MagicMock

from statement_categorizer.models import Category, Transaction
from statement_categorizer.services.batch import CategorizationStats, categorize_all


def test_categorize_all_counts_outcomes():
    categorizer = MagicMock()
    categorizer.categorize.side_effect = [
        Category.from_name("Groceries"),
        Category.uncategorized(),
        RuntimeError("boom"),
        Category.from_name("Travel"),
    ]
    transactions = [Transaction(party_name=f"party {i}") for i in range(4)]

    categories, stats = categorize_all(categorizer, transactions)

    assert [c.name for c in categories] == ["Groceries", "Uncategorized", "Uncategorized", "Travel"]
    assert (stats.total, stats.successful, stats.uncategorized, stats.failed) == (4, 2, 1, 1)
    assert stats.success_rate == 50.0


def test_empty_batch():
    categories, stats = categorize_all(MagicMock(), [])

    assert categories == []
    assert stats == CategorizationStats()
    assert stats.success_rate == 0.0
