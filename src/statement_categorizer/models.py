from pydantic import BaseModel, ConfigDict, Field

from statement_categorizer.domain.categories import (
    UNCATEGORIZED,
    UNCATEGORIZED_DESCRIPTION,
    category_description,
)


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    party_name: str = ""
    is_debtor: bool = False # True when the party is on the debtor side
    amount: str = ""
    date: str = ""
    info: str = ""
    description: str = ""
    category: str | None = None # Only set on copies returned by an AI client

class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""

    @classmethod
    def from_name(cls, name: str) -> "Category":
        return cls(name=name, description=category_description(name))

    @classmethod
    def uncategorized(cls) -> "Category":
        return cls(name=UNCATEGORIZED, description=UNCATEGORIZED_DESCRIPTION)

class CategoryConfig(BaseModel):
    name: str
    keywords: list[str] = Field(default_factory=list)

class CategorizationResult(BaseModel):
    category: Category
    confidence: float # 0.0 to 1.0
    source: str # "DirectMapping", "Keyword", "Semantic", "AI"
