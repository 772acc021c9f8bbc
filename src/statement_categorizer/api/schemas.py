from typing import Literal

from pydantic import BaseModel, Field

from statement_categorizer.models import Category, Transaction


class CategorizeRequest(BaseModel):
    transaction: Transaction


class BatchCategorizeRequest(BaseModel):
    transactions: list[Transaction] = Field(default_factory=list)


class BatchStats(BaseModel):
    total: int
    successful: int
    uncategorized: int
    failed: int
    success_rate: float


class BatchCategorizeResponse(BaseModel):
    categories: list[Category]
    stats: BatchStats


class MappingUpdateRequest(BaseModel):
    party_name: str = Field(min_length=1)
    category: str = Field(min_length=1)


class MappingUpdateResponse(BaseModel):
    mapping_type: Literal["creditor", "debtor"]
    party_name: str
    category: str
    changed: bool


class HealthResponse(BaseModel):
    status: str
    ai: str
    semantic_ready: bool
    strategies: list[str]
