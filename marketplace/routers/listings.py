from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.core.auth import get_current_user, get_current_user_optional
from marketplace.core.db import get_db
from marketplace.core.errors import NotFound
from marketplace.models.listing import Listing, ListingStatus
from marketplace.models.profile import User
from marketplace.models.saved import SavedListing
from marketplace.schemas.listing import (
    ListingCreateIn,
    ListingOut,
    ListingPageOut,
    ListingStatusIn,
    ListingUpdateIn,
)
from marketplace.services import listings

router = APIRouter(prefix="/api/listings", tags=["listings"])


# ---------- helpers ----------
def to_listing_out(l: Listing, is_owner: Optional[bool] = None, is_saved: Optional[bool] = None) -> ListingOut:
    return ListingOut(
        id=l.id,
        user_id=l.user_id,
        title=l.title,
        description=l.description,
        price=float(l.price),
        category=l.category,
        condition=l.condition,
        location=l.location,
        status=l.status.value,
        cover_image=l.cover_image,
        banner_image=l.banner_image,
        gallery_images=l.gallery_images,
        created_at=l.created_at,
        is_owner=is_owner,
        is_saved=is_saved,
    )


def _saved_ids(db: Session, me: Optional[User], rows: List[Listing]) -> set:
    if not me or not rows:
        return set()
    return set(
        db.execute(
            select(SavedListing.listing_id).where(
                SavedListing.user_id == me.id,
                SavedListing.listing_id.in_([l.id for l in rows]),
            )
        ).scalars().all()
    )


# ---------- 생성 ----------
@router.post("", response_model=ListingOut, status_code=status.HTTP_201_CREATED)
def create_listing(
    body: ListingCreateIn,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    listing = listings.create_listing(db, me.id, body.model_dump(by_alias=False))
    return to_listing_out(listing, is_owner=True, is_saved=False)


# ---------- 검색 (토큰 불필요) ----------
@router.get("", response_model=ListingPageOut)
def search_listings(
    # q 는 제목만 검색. 카테고리/지역은 각자 파라미터로
    q: Optional[str] = Query(None, description="Case-insensitive substring of the title only"),
    category: Optional[str] = Query(None, description="Case-insensitive substring of the category"),
    location: Optional[str] = Query(None, description="Case-insensitive substring of the location"),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    me: Optional[User] = Depends(get_current_user_optional),
):
    rows, total = listings.search_listings(
        db,
        q=q,
        category=category,
        location=location,
        min_price=min_price,
        max_price=max_price,
        page=page,
        size=size,
    )
    saved = _saved_ids(db, me, rows)
    data = [
        to_listing_out(l, is_owner=(me is not None and l.user_id == me.id), is_saved=(l.id in saved))
        for l in rows
    ]
    return ListingPageOut(page=page, size=size, total=total, data=data)


# ---------- 판매자 페이지 ----------
@router.get("/user/{user_id}", response_model=List[ListingOut])
def listings_by_user(
    user_id: int,
    db: Session = Depends(get_db),
    me: Optional[User] = Depends(get_current_user_optional),
):
    own = me is not None and me.id == user_id
    rows = listings.listings_by_user(db, user_id, include_hidden=own)
    return [to_listing_out(l, is_owner=own) for l in rows]


# ---------- 상세 ----------
@router.get("/{listing_id}", response_model=ListingOut)
def get_listing(
    listing_id: int,
    db: Session = Depends(get_db),
    me: Optional[User] = Depends(get_current_user_optional),
):
    listing = listings.get_listing(db, listing_id)
    is_owner = me is not None and listing.user_id == me.id
    # 숨김 처리된 글은 주인만 볼 수 있음
    if listing.status == ListingStatus.HIDDEN and not is_owner:
        raise NotFound("listing_not_found")
    return to_listing_out(listing, is_owner=is_owner, is_saved=bool(_saved_ids(db, me, [listing])))


@router.patch("/{listing_id}", response_model=ListingOut)
def update_listing(
    listing_id: int,
    body: ListingUpdateIn,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    listing = listings.get_owned(db, listing_id, me.id)
    listing = listings.update_listing(db, listing, body.model_dump(exclude_unset=True, by_alias=False))
    return to_listing_out(listing, is_owner=True)


@router.patch("/{listing_id}/status", response_model=ListingOut)
def set_listing_status(
    listing_id: int,
    body: ListingStatusIn,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    listing = listings.get_owned(db, listing_id, me.id)
    return to_listing_out(listings.set_status(db, listing, body.status), is_owner=True)


@router.delete("/{listing_id}")
def delete_listing(
    listing_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    listing = listings.get_owned(db, listing_id, me.id)
    return {"listingId": listings.delete_listing(db, listing)}
