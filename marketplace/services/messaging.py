# marketplace/services/messaging.py
import logging
from typing import Dict, List

from fastapi.encoders import jsonable_encoder
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.core.errors import NotFound, ValidationFailed
from marketplace.core.feed import ChangeFeed, Subscription
from marketplace.models.message import Message
from marketplace.models.profile import User
from marketplace.schemas.message import MessageOut

logger = logging.getLogger(__name__)

TABLE = "messages"


def _pair_filter(self_id: int, other_id: int):
    return or_(
        and_(Message.sender_id == self_id, Message.receiver_id == other_id),
        and_(Message.sender_id == other_id, Message.receiver_id == self_id),
    )


def message_row(m: Message) -> dict:
    """Field values of a message row, as delivered on the change feed."""
    return jsonable_encoder(MessageOut.model_validate(m).model_dump())


def in_pair(row: dict, self_id: int, other_id: int) -> bool:
    sender, receiver = row.get("sender_id"), row.get("receiver_id")
    return (sender == self_id and receiver == other_id) or (
        sender == other_id and receiver == self_id
    )


def load_conversation(db: Session, self_id: int, other_id: int, since_id: int = None) -> List[Message]:
    q = select(Message).where(_pair_filter(self_id, other_id))
    if since_id is not None:
        q = q.where(Message.id > since_id)
    q = q.order_by(Message.created_at.asc(), Message.id.asc())
    return list(db.execute(q).scalars().all())


def list_conversation_partners(db: Session, self_id: int) -> Dict[int, Message]:
    rows = db.execute(
        select(Message)
        .where(or_(Message.sender_id == self_id, Message.receiver_id == self_id))
        .order_by(Message.created_at.desc(), Message.id.desc())
    ).scalars()

    # 최신순으로 정렬돼 있으니 상대별로 처음 본 메시지가 마지막 메시지
    latest: Dict[int, Message] = {}
    for m in rows:
        other = m.receiver_id if m.sender_id == self_id else m.sender_id
        if other not in latest:
            latest[other] = m
    return latest


def send_message(
    db: Session,
    feed: ChangeFeed,
    self_id: int,
    other_id: int,
    content: str,
) -> Message:
    text = (content or "").strip()
    if not text:
        raise ValidationFailed("empty_content")
    if other_id == self_id:
        raise ValidationFailed("cannot_message_self")
    if db.get(User, other_id) is None:
        raise NotFound("user_not_found")

    msg = Message(sender_id=self_id, receiver_id=other_id, content=text)
    db.add(msg)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("message insert failed: %s -> %s", self_id, other_id)
        raise
    db.refresh(msg)

    feed.publish(TABLE, message_row(msg))
    return msg


def subscribe(feed: ChangeFeed, self_id: int, other_id: int, on_insert) -> Subscription:
    """Register ``on_insert`` for new messages of the (self, other) pair only."""
    return feed.subscribe(TABLE, on_insert, predicate=lambda row: in_pair(row, self_id, other_id))
