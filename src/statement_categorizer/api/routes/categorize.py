import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends

from statement_categorizer.api.dependencies import get_categorizer
from statement_categorizer.api.schemas import (
    BatchCategorizeRequest,
    BatchCategorizeResponse,
    BatchStats,
    CategorizeRequest,
    HealthResponse,
)
from statement_categorizer.manager import Categorizer
from statement_categorizer.models import CategorizationResult, Category
from statement_categorizer.services.batch import categorize_all

router = APIRouter()

FALLBACK_SOURCE = "Fallback"


@router.post("/categorize", response_model=CategorizationResult)
async def categorize_transaction(
    req: CategorizeRequest,
    categorizer: Annotated[Categorizer, Depends(get_categorizer)],
) -> CategorizationResult:
    result = await asyncio.to_thread(categorizer.classify, req.transaction)
    if result is None:
        return CategorizationResult(
            category=Category.uncategorized(),
            confidence=0.0,
            source=FALLBACK_SOURCE,
        )
    return result


@router.post("/categorize/batch", response_model=BatchCategorizeResponse)
async def categorize_batch(
    req: BatchCategorizeRequest,
    categorizer: Annotated[Categorizer, Depends(get_categorizer)],
) -> BatchCategorizeResponse:
    categories, stats = await asyncio.to_thread(categorize_all, categorizer, req.transactions)
    return BatchCategorizeResponse(
        categories=categories,
        stats=BatchStats(**stats.as_dict()),
    )


@router.get("/categories")
async def get_categories(
    categorizer: Annotated[Categorizer, Depends(get_categorizer)],
) -> list[str]:
    return categorizer.category_names()


@router.get("/health", response_model=HealthResponse)
async def health(
    categorizer: Annotated[Categorizer, Depends(get_categorizer)],
) -> HealthResponse:
    return HealthResponse(
        status="ok",
        ai=categorizer.ai_state.value,
        semantic_ready=categorizer.semantic.ready,
        strategies=[strategy.name for strategy in categorizer.strategies],
    )
