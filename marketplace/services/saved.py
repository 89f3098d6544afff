# marketplace/services/saved.py
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.core.errors import NotFound
from marketplace.models.listing import Listing
from marketplace.models.saved import SavedListing

logger = logging.getLogger(__name__)


def is_saved(db: Session, user_id: int, listing_id: int) -> bool:
    return db.get(SavedListing, (user_id, listing_id)) is not None


def set_saved(db: Session, user_id: int, listing_id: int, saved: bool) -> bool:
    if db.get(Listing, listing_id) is None:
        raise NotFound("listing_not_found")

    row = db.get(SavedListing, (user_id, listing_id))
    if saved and row is None:
        db.add(SavedListing(user_id=user_id, listing_id=listing_id))
        try:
            db.commit()
        except IntegrityError:
            # 더블클릭 등으로 이미 들어간 경우 - 저장된 상태로 간주
            db.rollback()
            logger.info("duplicate save ignored: user=%s listing=%s", user_id, listing_id)
        return True
    if not saved and row is not None:
        db.delete(row)
        db.commit()
        return False
    return row is not None


def toggle_save(db: Session, user_id: int, listing_id: int) -> bool:
    """Insert if absent, delete if present. Returns the new state."""
    return set_saved(db, user_id, listing_id, not is_saved(db, user_id, listing_id))


def list_saved(db: Session, user_id: int) -> List[Listing]:
    return list(
        db.execute(
            select(Listing)
            .join(SavedListing, SavedListing.listing_id == Listing.id)
            .where(SavedListing.user_id == user_id)
            .order_by(SavedListing.created_at.desc())
        ).scalars().all()
    )
