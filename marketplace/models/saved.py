from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer

from marketplace.core.db import Base


class SavedListing(Base):
    __tablename__ = "saved_listings"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), primary_key=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
