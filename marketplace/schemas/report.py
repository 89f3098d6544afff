from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import BaseSchema


class ReportIn(BaseSchema):
    reason: str = Field(..., min_length=1, max_length=2000)


class ReportOut(BaseSchema):
    id: int
    listing_id: int
    reporter_id: Optional[int] = None
    reason: str
    created_at: datetime
    listing_title: Optional[str] = None
    listing_status: Optional[str] = None
    seller_id: Optional[int] = None
