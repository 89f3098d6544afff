# marketplace/routers/messages.py
from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.core.auth import get_current_user
from marketplace.core.db import get_db
from marketplace.core.feed import ChangeFeed, get_feed
from marketplace.models.profile import Profile, User
from marketplace.schemas.message import (
    ConversationItemOut,
    ConversationListOut,
    ConversationOut,
    MessageIn,
    MessageOut,
)
from marketplace.schemas.profile import ProfileOut
from marketplace.services import messaging, profiles

router = APIRouter(prefix="/api/messages", tags=["messages"])


# ✅ GET /api/messages/conversations
@router.get("/conversations", response_model=ConversationListOut)
def list_conversations(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    latest = messaging.list_conversation_partners(db, me.id)

    others = {}
    if latest:
        rows = db.execute(select(Profile).where(Profile.id.in_(list(latest.keys())))).scalars().all()
        others = {p.id: p for p in rows}

    items = [
        ConversationItemOut(
            other_id=other_id,
            other=ProfileOut.model_validate(others[other_id]) if other_id in others else None,
            last_message=MessageOut.model_validate(msg),
        )
        for other_id, msg in latest.items()
    ]
    return ConversationListOut(conversations=items)


# ✅ GET /api/messages/{other_id}
@router.get("/{other_id}", response_model=ConversationOut)
def get_conversation(
    other_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    other = profiles.get_profile(db, other_id)
    rows = messaging.load_conversation(db, me.id, other_id)
    return ConversationOut(
        state="ready" if rows else "empty",
        other=ProfileOut.model_validate(other),
        messages=[MessageOut.model_validate(m) for m in rows],
    )


# ✅ POST /api/messages/{other_id}
@router.post("/{other_id}", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def send_message(
    other_id: int,
    body: MessageIn,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
    me: User = Depends(get_current_user),
):
    return messaging.send_message(db, feed, me.id, other_id, body.content)
