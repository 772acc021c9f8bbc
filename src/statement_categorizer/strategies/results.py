from dataclasses import dataclass, field

from statement_categorizer.models import CategorizationResult, Category


@dataclass(frozen=True)
class StrategyResult:
    strategy: str
    category: Category | None = None
    found: bool = False
    error: Exception | None = None
    confidence: float = 0.0

    @classmethod
    def from_classification(
        cls, strategy: str, result: CategorizationResult | None
    ) -> "StrategyResult":
        if result is None:
            return cls(strategy=strategy)
        return cls(
            strategy=strategy,
            category=result.category,
            found=True,
            confidence=result.confidence,
        )

    @property
    def status(self) -> str:
        if self.found:
            return "success"
        if self.error is None:
            return "no_match"
        return "failed"


@dataclass
class StrategyResults:
    """Outcomes of every strategy tried for one transaction, in the order they ran."""

    results: list[StrategyResult] = field(default_factory=list)

    def add(self, result: StrategyResult) -> None:
        self.results.append(result)

    def best(self) -> StrategyResult | None:
        """
        First found, error-free result. Without one, the error-free result with the
        highest confidence (ties keep the earliest).
        """
        for result in self.results:
            if result.found and result.error is None:
                return result

        best_result: StrategyResult | None = None
        for result in self.results:
            if result.error is not None:
                continue
            if best_result is None or result.confidence > best_result.confidence:
                best_result = result
        return best_result

    def errors(self) -> list[str]:
        return [
            f"{result.strategy} strategy: {result.error}"
            for result in self.results
            if result.error is not None
        ]

    def summary(self) -> str:
        return ", ".join(f"{result.strategy}:{result.status}" for result in self.results)
