# marketplace/models/listing.py
import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from marketplace.core.db import Base


class ListingStatus(str, enum.Enum):
    ACTIVE = "active"
    SOLD = "sold"
    HIDDEN = "hidden"


class Listing(Base):
    __tablename__ = "listings"

    id = Column(Integer, primary_key=True, index=True)
    # 생성 후 변경 불가
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    category = Column(String(50), nullable=False)
    condition = Column(String(50), nullable=False)
    location = Column(String(200), nullable=False)
    status = Column(
        Enum(ListingStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=20),
        nullable=False,
        default=ListingStatus.ACTIVE,
    )

    cover_image = Column(String(1024), nullable=False)
    banner_image = Column(String(1024), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    gallery = relationship(
        "ListingImage",
        cascade="all, delete-orphan",
        back_populates="listing",
        order_by="ListingImage.ord",
        lazy="selectin",
    )

    @property
    def gallery_images(self):
        return [img.url for img in self.gallery]


class ListingImage(Base):
    __tablename__ = "listing_images"

    id = Column(Integer, primary_key=True)
    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    ord = Column(Integer, nullable=False, default=0)
    url = Column(String(1024), nullable=False)

    listing = relationship("Listing", back_populates="gallery")
