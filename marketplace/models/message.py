# marketplace/models/message.py
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text

from marketplace.core.db import Base


def _now():
    return datetime.now(timezone.utc)


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    # 서버에서 부여, 이후 변경 없음
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now, index=True)

    __table_args__ = (Index("ix_messages_pair", "sender_id", "receiver_id", "created_at"),)
