from abc import ABC, abstractmethod

from statement_categorizer.models import CategorizationResult, Transaction


class CategorizationStrategy(ABC):
    name: str = "Strategy"

    @abstractmethod
    def classify(self, transaction: Transaction) -> CategorizationResult | None:
        """Attempt to categorize the transaction. ``None`` means no match."""
        pass
