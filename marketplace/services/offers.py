# marketplace/services/offers.py
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.core.config import settings
from marketplace.core.errors import Forbidden, IllegalTransition, NotFound, ValidationFailed
from marketplace.models.listing import Listing, ListingStatus
from marketplace.models.offer import Offer, OfferStatus
from marketplace.models.profile import Profile

logger = logging.getLogger(__name__)

ANONYMOUS_BUYER = "Anonymous Buyer"

# pending 에서만 움직일 수 있음. countered 에 대한 응답은 새 Offer 로.
TRANSITIONS: Dict[OfferStatus, FrozenSet[OfferStatus]] = {
    OfferStatus.PENDING: frozenset({OfferStatus.ACCEPTED, OfferStatus.REJECTED, OfferStatus.COUNTERED}),
    OfferStatus.ACCEPTED: frozenset(),
    OfferStatus.REJECTED: frozenset(),
    OfferStatus.COUNTERED: frozenset(),
}


def can_transition(current: OfferStatus, target: OfferStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def _utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def _money(value) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationFailed("invalid_offer_price")
    # NaN / Infinity 는 비교 자체가 안 됨
    if not amount.is_finite():
        raise ValidationFailed("invalid_offer_price")
    return amount


def is_expired(offer: Offer, now: datetime = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return _utc(offer.expires_at) <= now


def _commit(db: Session, what: str, offer_id=None) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("offer %s failed (offer=%s)", what, offer_id)
        raise


def _get_offer(db: Session, offer_id: int) -> Offer:
    offer = db.get(Offer, offer_id)
    if offer is None:
        raise NotFound("offer_not_found")
    return offer


def _guard(offer: Offer, target: OfferStatus, actor_id: Optional[int]) -> None:
    if actor_id is not None and actor_id != offer.seller_id:
        raise Forbidden("only_seller_can_respond")
    if not can_transition(offer.status, target):
        raise IllegalTransition("illegal_transition")
    if target in (OfferStatus.ACCEPTED, OfferStatus.COUNTERED) and is_expired(offer):
        raise IllegalTransition("offer_expired")


def has_accepted_offer(db: Session, listing_id: int) -> bool:
    return db.execute(
        select(Offer.id).where(Offer.listing_id == listing_id, Offer.status == OfferStatus.ACCEPTED).limit(1)
    ).first() is not None


def _transition(db: Session, offer: Offer, target: OfferStatus, **values) -> None:
    """Move ``offer`` out of pending only if the row is still pending in the store."""
    result = db.execute(
        update(Offer)
        .where(Offer.id == offer.id, Offer.status == OfferStatus.PENDING)
        .values(status=target, **values)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        db.rollback()
        raise IllegalTransition("illegal_transition")


def validate_offer_price(price, listing_price) -> Decimal:
    amount = _money(price)
    if amount <= 0 or amount >= _money(listing_price):
        raise ValidationFailed("invalid_offer_price")
    return amount


def create_offer(
    db: Session,
    listing_id: int,
    buyer_id: int,
    price,
    message: Optional[str] = None,
    seller_id: Optional[int] = None,
) -> Offer:
    listing = db.get(Listing, listing_id)
    if listing is None:
        raise NotFound("listing_not_found")
    if seller_id is not None and seller_id != listing.user_id:
        raise ValidationFailed("seller_mismatch")
    if buyer_id == listing.user_id:
        raise ValidationFailed("cannot_offer_own_listing")
    if listing.status != ListingStatus.ACTIVE:
        raise ValidationFailed("listing_not_active")
    if has_accepted_offer(db, listing.id):
        raise IllegalTransition("listing_already_accepted")

    amount = validate_offer_price(price, listing.price)

    now = datetime.now(timezone.utc)
    offer = Offer(
        listing_id=listing.id,
        buyer_id=buyer_id,
        seller_id=listing.user_id,
        offered_price=amount,
        message=(message or "").strip() or None,
        status=OfferStatus.PENDING,
        created_at=now,
        expires_at=now + timedelta(days=settings.OFFER_TTL_DAYS),
    )
    db.add(offer)
    _commit(db, "create")
    db.refresh(offer)
    logger.info("offer %s created on listing %s at %s", offer.id, listing.id, amount)
    return offer


def accept_offer(db: Session, offer_id: int, actor_id: Optional[int] = None) -> Offer:
    offer = _get_offer(db, offer_id)
    _guard(offer, OfferStatus.ACCEPTED, actor_id)
    # listing 당 accepted 는 최대 하나
    if has_accepted_offer(db, offer.listing_id):
        raise IllegalTransition("listing_already_accepted")

    _transition(db, offer, OfferStatus.ACCEPTED)
    # 같은 listing 의 나머지 pending offer 는 같은 트랜잭션에서 모두 거절
    db.execute(
        update(Offer)
        .where(
            Offer.listing_id == offer.listing_id,
            Offer.id != offer.id,
            Offer.status == OfferStatus.PENDING,
        )
        .values(status=OfferStatus.REJECTED)
        .execution_options(synchronize_session="fetch")
    )
    _commit(db, "accept", offer_id)
    db.refresh(offer)
    logger.info("offer %s accepted on listing %s", offer.id, offer.listing_id)
    return offer


def reject_offer(db: Session, offer_id: int, actor_id: Optional[int] = None) -> Offer:
    offer = _get_offer(db, offer_id)
    _guard(offer, OfferStatus.REJECTED, actor_id)

    _transition(db, offer, OfferStatus.REJECTED)
    _commit(db, "reject", offer_id)
    db.refresh(offer)
    return offer


def counter_offer(
    db: Session,
    offer_id: int,
    new_price,
    message: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> Offer:
    offer = _get_offer(db, offer_id)
    _guard(offer, OfferStatus.COUNTERED, actor_id)

    amount = _money(new_price)
    if amount <= 0:
        raise ValidationFailed("invalid_offer_price")

    # 기존 가격은 덮어씀 (이력 보존 안 함)
    _transition(db, offer, OfferStatus.COUNTERED, offered_price=amount, message=(message or "").strip() or None)
    _commit(db, "counter", offer_id)
    db.refresh(offer)
    return offer


def list_offers(db: Session, listing_id: int) -> List[Tuple[Offer, str]]:
    """Offers on a listing, newest first, each with the buyer's display name."""
    rows = db.execute(
        select(Offer, Profile)
        .outerjoin(Profile, Profile.id == Offer.buyer_id)
        .where(Offer.listing_id == listing_id)
        .order_by(Offer.created_at.desc(), Offer.id.desc())
    ).all()

    return [
        (offer, buyer.display_name if buyer is not None else ANONYMOUS_BUYER)
        for offer, buyer in rows
    ]
