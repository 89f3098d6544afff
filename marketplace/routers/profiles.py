import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from marketplace.core.auth import get_current_user
from marketplace.core.db import get_db
from marketplace.core.errors import MarketError
from marketplace.models.profile import Profile, User
from marketplace.schemas.profile import MyProfileOut, ProfileOut, ProfileUpdateIn
from marketplace.services import profiles
from marketplace.services.storage import ObjectStore, get_object_store, upload_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


def to_my_profile(p: Profile) -> MyProfileOut:
    return MyProfileOut(
        id=p.id,
        username=p.username,
        name=p.name,
        city=p.city,
        avatar_url=p.avatar_url,
        email=p.user.email,
        phone=p.phone,
        is_admin=p.is_admin,
        banned=p.banned,
        updated_at=p.updated_at,
    )


@router.get("/me", response_model=MyProfileOut)
def get_me(me: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return to_my_profile(profiles.get_profile(db, me.id))


@router.patch("/me", response_model=MyProfileOut)
def update_me(payload: ProfileUpdateIn, me: User = Depends(get_current_user), db: Session = Depends(get_db)):
    profile = profiles.get_profile(db, me.id)
    data = payload.model_dump(exclude_unset=True, by_alias=False)
    return to_my_profile(profiles.update_profile(db, profile, data))


@router.post("/me/avatar", response_model=MyProfileOut)
async def upload_avatar(
    image: UploadFile = File(...),
    me: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    profile = profiles.get_profile(db, me.id)
    contents = await image.read()
    try:
        url = upload_image(store, me.id, image.filename, contents, image.content_type)
    except MarketError as e:
        # 업로드 실패해도 기존 아바타 유지
        logger.warning("avatar upload failed for %s: %s", me.id, e.code)
        return to_my_profile(profile)
    return to_my_profile(profiles.set_avatar(db, profile, url))


@router.get("/{user_id}", response_model=ProfileOut)
def get_profile(user_id: int, db: Session = Depends(get_db)):
    return profiles.get_profile(db, user_id)
