# marketplace/services/listings.py
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from marketplace.core.config import settings
from marketplace.core.errors import Forbidden, NotFound, ValidationFailed
from marketplace.models.listing import Listing, ListingImage, ListingStatus

logger = logging.getLogger(__name__)

EDITABLE = ("title", "description", "category", "condition", "location", "cover_image")


def _image_count(cover: Optional[str], banner: Optional[str], gallery: List[str]) -> int:
    return sum(1 for u in [cover, banner, *gallery] if u)


def _check_images(cover: Optional[str], banner: Optional[str], gallery: List[str]) -> None:
    if not cover:
        raise ValidationFailed("cover_image_required")
    if _image_count(cover, banner, gallery) < settings.MIN_LISTING_IMAGES:
        raise ValidationFailed("not_enough_images")


def _replace_gallery(listing: Listing, urls: List[str]) -> None:
    listing.gallery = [ListingImage(ord=i, url=str(u)) for i, u in enumerate(urls) if u]


def get_listing(db: Session, listing_id: int) -> Listing:
    listing = db.get(Listing, listing_id)
    if listing is None:
        raise NotFound("listing_not_found")
    return listing


def get_owned(db: Session, listing_id: int, user_id: int) -> Listing:
    listing = get_listing(db, listing_id)
    if listing.user_id != user_id:
        raise Forbidden("not_owner")
    return listing


def create_listing(db: Session, user_id: int, data: dict) -> Listing:
    gallery = list(data.get("gallery_images") or [])
    _check_images(data.get("cover_image"), data.get("banner_image"), gallery)
    if Decimal(str(data["price"])) <= 0:
        raise ValidationFailed("invalid_price")

    listing = Listing(
        user_id=user_id,
        title=data["title"],
        description=data["description"],
        price=Decimal(str(data["price"])),
        category=data["category"],
        condition=data["condition"],
        location=data["location"],
        status=ListingStatus.ACTIVE,
        cover_image=data["cover_image"],
        banner_image=data.get("banner_image"),
    )
    _replace_gallery(listing, gallery)
    db.add(listing)
    db.commit()
    db.refresh(listing)
    logger.info("listing %s created by %s", listing.id, user_id)
    return listing


def update_listing(db: Session, listing: Listing, data: dict) -> Listing:
    gallery = data["gallery_images"] if data.get("gallery_images") is not None else listing.gallery_images
    cover = data.get("cover_image") or listing.cover_image
    banner = data["banner_image"] if "banner_image" in data else listing.banner_image
    _check_images(cover, banner, gallery)

    for key in EDITABLE:
        if key in data and data[key] is not None:
            setattr(listing, key, data[key])
    if "banner_image" in data:
        listing.banner_image = data["banner_image"]
    if data.get("price") is not None:
        listing.price = Decimal(str(data["price"]))
    if data.get("gallery_images") is not None:
        _replace_gallery(listing, gallery)

    db.commit()
    db.refresh(listing)
    return listing


def set_status(db: Session, listing: Listing, status: str) -> Listing:
    listing.status = ListingStatus(status)
    db.commit()
    db.refresh(listing)
    logger.info("listing %s -> %s", listing.id, listing.status.value)
    return listing


def delete_listing(db: Session, listing: Listing) -> int:
    lid = listing.id
    db.delete(listing)
    db.commit()
    return lid


def search_listings(
    db: Session,
    q: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    page: int = 1,
    size: int = 20,
) -> Tuple[List[Listing], int]:
    query = select(Listing).where(Listing.status == ListingStatus.ACTIVE)

    if q:
        query = query.where(Listing.title.ilike(f"%{q}%"))
    if category:
        query = query.where(Listing.category.ilike(f"%{category}%"))
    if location:
        query = query.where(Listing.location.ilike(f"%{location}%"))
    if min_price is not None:
        query = query.where(Listing.price >= Decimal(str(min_price)))
    if max_price is not None:
        query = query.where(Listing.price <= Decimal(str(max_price)))

    total = db.scalar(select(func.count()).select_from(query.subquery()))
    rows = db.execute(
        query.order_by(desc(Listing.created_at), desc(Listing.id)).offset((page - 1) * size).limit(size)
    ).scalars().all()
    return list(rows), total


def listings_by_user(db: Session, user_id: int, include_hidden: bool = False) -> List[Listing]:
    query = select(Listing).where(Listing.user_id == user_id)
    if not include_hidden:
        query = query.where(Listing.status != ListingStatus.HIDDEN)
    return list(db.execute(query.order_by(desc(Listing.created_at), desc(Listing.id))).scalars().all())
