# marketplace/routers/offers.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from marketplace.core.auth import get_current_user
from marketplace.core.db import get_db
from marketplace.models.offer import Offer
from marketplace.models.profile import User
from marketplace.schemas.offer import CounterOfferIn, OfferCreateIn, OfferListOut, OfferOut
from marketplace.services import listings, offers

router = APIRouter(prefix="/api", tags=["offers"])


def to_offer_out(o: Offer, buyer_name: str = None) -> OfferOut:
    return OfferOut(
        id=o.id,
        listing_id=o.listing_id,
        buyer_id=o.buyer_id,
        seller_id=o.seller_id,
        offered_price=float(o.offered_price),
        message=o.message,
        status=o.status.value,
        created_at=o.created_at,
        expires_at=o.expires_at,
        buyer_name=buyer_name,
    )


@router.get("/listings/{listing_id}/offers", response_model=OfferListOut)
def list_offers(
    listing_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    listings.get_listing(db, listing_id)
    rows = offers.list_offers(db, listing_id)
    # 판매자는 전체, 구매자는 자기 offer 만
    visible = [(o, name) for o, name in rows if me.id in (o.seller_id, o.buyer_id)]
    return OfferListOut(offers=[to_offer_out(o, name) for o, name in visible])


@router.post("/listings/{listing_id}/offers", response_model=OfferOut, status_code=status.HTTP_201_CREATED)
def create_offer(
    listing_id: int,
    body: OfferCreateIn,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    offer = offers.create_offer(db, listing_id, me.id, body.offered_price, body.message)
    return to_offer_out(offer)


@router.post("/offers/{offer_id}/accept", response_model=OfferOut)
def accept_offer(
    offer_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return to_offer_out(offers.accept_offer(db, offer_id, actor_id=me.id))


@router.post("/offers/{offer_id}/reject", response_model=OfferOut)
def reject_offer(
    offer_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return to_offer_out(offers.reject_offer(db, offer_id, actor_id=me.id))


@router.post("/offers/{offer_id}/counter", response_model=OfferOut)
def counter_offer(
    offer_id: int,
    body: CounterOfferIn,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return to_offer_out(offers.counter_offer(db, offer_id, body.offered_price, body.message, actor_id=me.id))
