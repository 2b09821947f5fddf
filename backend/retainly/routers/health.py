from fastapi import APIRouter, Depends

from retainly.db.base import CardStore
from retainly.deps import get_store

router = APIRouter()


@router.get("/health")
async def health(store: CardStore = Depends(get_store)) -> dict:
    return {"status": "ok", "store": type(store).__name__}
