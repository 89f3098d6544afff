from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from marketplace.core.auth import get_current_user
from marketplace.core.db import get_db
from marketplace.models.profile import User
from marketplace.routers.listings import to_listing_out
from marketplace.schemas.listing import ListingOut
from marketplace.schemas.saved import SaveStateOut
from marketplace.services import saved

router = APIRouter(prefix="/api", tags=["saved"])


# ---------- 찜 토글 ----------
class SaveToggleIn(BaseModel):
    # 값을 주면 그 상태로 맞추고, 없으면 토글
    saved: Optional[bool] = None


def _state(listing_id: int, is_saved: bool) -> SaveStateOut:
    return SaveStateOut(listing_id=listing_id, saved=is_saved, updated_at=datetime.now(timezone.utc))


@router.get("/listings/{listing_id}/save", response_model=SaveStateOut)
def get_save_state(
    listing_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return _state(listing_id, saved.is_saved(db, me.id, listing_id))


@router.put("/listings/{listing_id}/save", response_model=SaveStateOut)
def toggle_save(
    listing_id: int,
    body: Optional[SaveToggleIn] = None,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    if body is not None and body.saved is not None:
        state = saved.set_saved(db, me.id, listing_id, body.saved)
    else:
        state = saved.toggle_save(db, me.id, listing_id)
    return _state(listing_id, state)


@router.get("/saved", response_model=List[ListingOut])
def list_saved(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return [to_listing_out(l, is_owner=(l.user_id == me.id), is_saved=True) for l in saved.list_saved(db, me.id)]
