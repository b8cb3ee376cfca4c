from fastapi import APIRouter, Depends, HTTPException, Response
from typing import List

from app.dependencies import require_user, get_history_store
from app.exceptions.scan import StorageUnavailable
from app.schemas.auth import User
from app.schemas.history import HistoryItem
from app.services.history import HistoryStore

router = APIRouter(prefix="/history")


@router.get("", response_model=List[HistoryItem])
async def list_history(
    user: User = Depends(require_user),
    store: HistoryStore = Depends(get_history_store)
):
    """Saved diagnoses of the caller, newest first."""
    try:
        return await store.list(user.phone)
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.delete("/{item_id}", status_code=204)
async def delete_history_item(
    item_id: str,
    user: User = Depends(require_user),
    store: HistoryStore = Depends(get_history_store)
):
    try:
        await store.delete(user.phone, item_id)
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return Response(status_code=204)
