from fastapi import HTTPException, Request

from statement_categorizer.manager import Categorizer


def get_categorizer(request: Request) -> Categorizer:
    categorizer = getattr(request.app.state, "categorizer", None)
    if not categorizer:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return categorizer
