# marketplace/models/offer.py
import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, Text

from marketplace.core.db import Base


class OfferStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTERED = "countered"


class Offer(Base):
    __tablename__ = "offers"

    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(Integer, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    buyer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    seller_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    offered_price = Column(Numeric(12, 2), nullable=False)
    message = Column(Text, nullable=True)
    status = Column(
        Enum(OfferStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=20),
        nullable=False,
        default=OfferStatus.PENDING,
    )
    # created_at / expires_at 은 서비스에서 같은 시각 기준으로 채움
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
