# marketplace/schemas/listing.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from .base import BaseSchema

ListingStatusLiteral = Literal["active", "sold", "hidden"]


class ListingCreateIn(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    category: str = Field(..., min_length=1, max_length=50)
    condition: str = Field(..., min_length=1, max_length=50)
    location: str = Field(..., min_length=1, max_length=200)
    cover_image: str = Field(..., min_length=1)
    banner_image: Optional[str] = None
    gallery_images: List[str] = Field(default_factory=list)


class ListingUpdateIn(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, gt=0)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    condition: Optional[str] = Field(None, min_length=1, max_length=50)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    cover_image: Optional[str] = None
    banner_image: Optional[str] = None
    gallery_images: Optional[List[str]] = None


class ListingStatusIn(BaseSchema):
    status: ListingStatusLiteral


class ListingOut(BaseSchema):
    id: int
    user_id: int
    title: str
    description: str
    price: float
    category: str
    condition: str
    location: str
    status: ListingStatusLiteral
    cover_image: str
    banner_image: Optional[str] = None
    gallery_images: List[str]
    created_at: datetime
    is_owner: Optional[bool] = None
    is_saved: Optional[bool] = None


class ListingPageOut(BaseSchema):
    page: int
    size: int
    total: int
    data: List[ListingOut]
