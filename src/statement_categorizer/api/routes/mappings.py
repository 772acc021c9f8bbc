import asyncio
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException

from statement_categorizer.api.dependencies import get_categorizer
from statement_categorizer.api.schemas import MappingUpdateRequest, MappingUpdateResponse
from statement_categorizer.integration.store import CategoryStoreError
from statement_categorizer.logger import get_logger
from statement_categorizer.manager import Categorizer

logger = get_logger(__name__)

router = APIRouter(prefix="/mappings")


@router.put("/{mapping_type}", response_model=MappingUpdateResponse)
async def update_mapping(
    mapping_type: Literal["creditor", "debtor"],
    req: MappingUpdateRequest,
    categorizer: Annotated[Categorizer, Depends(get_categorizer)],
) -> MappingUpdateResponse:
    if mapping_type == "debtor":
        changed = categorizer.update_debtor_mapping(req.party_name, req.category)
    else:
        changed = categorizer.update_creditor_mapping(req.party_name, req.category)

    if changed:
        try:
            await asyncio.to_thread(categorizer.save_mappings)
        except CategoryStoreError as exc:
            logger.error("[API] Failed to save %s mappings: %s", mapping_type, exc)
            raise HTTPException(status_code=500, detail=f"Failed to save mappings: {exc}") from exc

    return MappingUpdateResponse(
        mapping_type=mapping_type,
        party_name=req.party_name,
        category=req.category,
        changed=changed,
    )


@router.post("/reload")
async def reload_mappings(
    categorizer: Annotated[Categorizer, Depends(get_categorizer)],
) -> dict[str, str]:
    await asyncio.to_thread(categorizer.reload)
    return {"status": "reloaded"}
