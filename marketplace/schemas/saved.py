from datetime import datetime

from .base import BaseSchema


class SaveStateOut(BaseSchema):
    listing_id: int
    saved: bool
    updated_at: datetime
