# marketplace/schemas/message.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

from .base import BaseSchema
from .profile import ProfileOut


class MessageIn(BaseSchema):
    content: str


class MessageOut(BaseSchema):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    created_at: datetime


class ConversationOut(BaseSchema):
    state: Literal["empty", "ready"]
    other: ProfileOut
    messages: List[MessageOut]


class ConversationItemOut(BaseSchema):
    other_id: int
    other: Optional[ProfileOut] = None
    last_message: MessageOut


class ConversationListOut(BaseSchema):
    conversations: List[ConversationItemOut]


# ===== WebSocket 이벤트 =====
class SendMessageEvent(BaseModel):
    event: Literal["send_message"]
    content: str
    tempId: Optional[str] = None


class LeaveEvent(BaseModel):
    event: Literal["leave"]


class SystemMessageEvent(BaseModel):
    event: Literal["system_message"] = "system_message"
    type: str
    message: str


class ErrorEvent(BaseModel):
    event: Literal["error"] = "error"
    code: int
    message: str
    tempId: Optional[str] = None
