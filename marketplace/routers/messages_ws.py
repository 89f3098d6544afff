# marketplace/routers/messages_ws.py
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.core.db import get_db
from marketplace.core.errors import MarketError
from marketplace.core.feed import ChangeFeed, get_feed
from marketplace.models.profile import Profile, User
from marketplace.schemas.message import (
    ErrorEvent,
    LeaveEvent,
    MessageOut,
    SendMessageEvent,
    SystemMessageEvent,
)
from marketplace.services import messaging
from marketplace.services.conversation import ConversationView, LoadState
from marketplace.utils.auth_ws import decode_user_id

logger = logging.getLogger(__name__)

router = APIRouter()


async def send_event(ws: WebSocket, data: dict) -> None:
    # ✅ datetime, Pydantic 등 전부 JSON 가능하게 변환
    await ws.send_json(jsonable_encoder(data))


def _since(raw: Optional[str]) -> Optional[int]:
    try:
        return int(raw) if raw not in (None, "") else None
    except ValueError:
        return None


@router.websocket("/ws/messages/{other_id}")
async def websocket_conversation(
    websocket: WebSocket,
    other_id: int,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    # 1) 토큰 검증 (쿼리 파라미터)
    user_id = decode_user_id(websocket.query_params.get("token"))
    if not user_id:
        await websocket.close(code=4001)  # invalid/expired token
        return

    me = db.get(User, user_id)
    if me is None:
        await websocket.close(code=4001)
        return
    if me.profile is not None and me.profile.banned:
        await websocket.close(code=4003)
        return
    if other_id == user_id or db.get(Profile, other_id) is None:
        await websocket.close(code=4004)
        return

    await websocket.accept()

    view = ConversationView(
        self_id=user_id,
        other_id=other_id,
        loader=lambda since_id: messaging.load_conversation(db, user_id, other_id, since_id=since_id),
        sender=lambda text: messaging.send_message(db, feed, user_id, other_id, text),
    )

    subscription = None
    pump = None
    try:
        # 2) 먼저 구독하고 나서 스냅샷을 읽어야 그 사이 insert 를 놓치지 않음
        loop = asyncio.get_running_loop()
        inbox: asyncio.Queue = asyncio.Queue()
        subscription = messaging.subscribe(
            feed, user_id, other_id, lambda row: loop.call_soon_threadsafe(inbox.put_nowait, row)
        )

        since = _since(websocket.query_params.get("since"))
        if since is None:
            view.load()
            snapshot = view.messages
        else:
            # 재연결: 마지막으로 본 id 이후만 다시 받음
            snapshot = view.reconcile(since_id=since)

        if view.state == LoadState.ERROR:
            await send_event(websocket, ErrorEvent(code=5000, message=view.error or "load_failed").model_dump())
        else:
            await send_event(
                websocket,
                {
                    "event": "snapshot",
                    "state": view.state.value,
                    "messages": [m.model_dump(by_alias=True) for m in snapshot],
                },
            )

        async def pump_feed():
            while True:
                row = await inbox.get()
                if view.apply(row):
                    message = MessageOut.model_validate(row)
                    await send_event(websocket, {"event": "message", "message": message.model_dump(by_alias=True)})

        pump = asyncio.create_task(pump_feed())

        while True:
            data = await websocket.receive_json()
            ev = data.get("event") if isinstance(data, dict) else None

            if ev == "send_message":
                try:
                    parsed = SendMessageEvent(**data)
                except ValidationError:
                    await send_event(websocket, ErrorEvent(code=4000, message="invalid_payload").model_dump())
                    continue

                try:
                    msg = view.send(parsed.content, temp_id=parsed.tempId)
                except MarketError as e:
                    await send_event(
                        websocket, ErrorEvent(code=4000, message=e.code, tempId=parsed.tempId).model_dump()
                    )
                    continue
                except SQLAlchemyError as e:
                    await send_event(
                        websocket, ErrorEvent(code=5000, message=str(e), tempId=parsed.tempId).model_dump()
                    )
                    continue

                if msg is None:
                    await send_event(
                        websocket, ErrorEvent(code=4000, message="empty_content", tempId=parsed.tempId).model_dump()
                    )
                    continue

                # 보낸 사람에게는 tempId 를 실제 row 로 교체하라고 알려줌
                await send_event(
                    websocket,
                    {"event": "message_ack", "tempId": parsed.tempId, "message": msg.model_dump(by_alias=True)},
                )

            elif ev == "leave":
                LeaveEvent(**data)
                await send_event(websocket, SystemMessageEvent(type="leave", message="bye").model_dump())
                await websocket.close(code=1000)  # normal close
                break

            else:
                await send_event(websocket, ErrorEvent(code=4000, message="unknown_event").model_dump())

    except WebSocketDisconnect:
        pass
    finally:
        if pump is not None:
            pump.cancel()
        if subscription is not None:
            subscription.unsubscribe()
        logger.debug("conversation socket closed: %s <-> %s", user_id, other_id)
