from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from .base import BaseSchema


class OfferCreateIn(BaseSchema):
    offered_price: float = Field(..., allow_inf_nan=False)
    message: Optional[str] = Field(None, max_length=1000)


class CounterOfferIn(BaseSchema):
    offered_price: float = Field(..., allow_inf_nan=False)
    message: Optional[str] = Field(None, max_length=1000)


class OfferOut(BaseSchema):
    id: int
    listing_id: int
    buyer_id: int
    seller_id: int
    offered_price: float
    message: Optional[str] = None
    status: Literal["pending", "accepted", "rejected", "countered"]
    created_at: datetime
    expires_at: datetime
    buyer_name: Optional[str] = None


class OfferListOut(BaseSchema):
    offers: List[OfferOut]
