# marketplace/services/conversation.py
"""Live two-party conversation view.

A ``ConversationView`` is the transcript one consumer (a WebSocket session,
a test, a script) keeps for the pair (self, other). It is built from an
authoritative snapshot, then kept current from change-feed rows. Confirmed
messages are always ordered by ``(created_at, id)`` and never duplicated.
Optimistic sends live in a ``PendingLedger`` until the store answers.

The view is not thread-safe; feed rows must be applied from the thread that
owns it.
"""
import bisect
import enum
import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional, Union

from marketplace.core.feed import ChangeFeed, Subscription
from marketplace.schemas.message import MessageOut
from marketplace.services import messaging

logger = logging.getLogger(__name__)

RowLike = Union[dict, MessageOut]
Loader = Callable[[Optional[int]], Iterable[RowLike]]
Sender = Callable[[str], RowLike]


class LoadState(str, enum.Enum):
    LOADING = "loading"
    EMPTY = "empty"
    READY = "ready"
    ERROR = "error"


@dataclass
class PendingMessage:
    temp_id: str
    sender_id: int
    receiver_id: int
    content: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PendingLedger:
    """In-flight optimistic entries keyed by a locally generated temporary id."""

    def __init__(self):
        self._entries: "OrderedDict[str, PendingMessage]" = OrderedDict()

    def add(self, sender_id: int, receiver_id: int, content: str, temp_id: str = None) -> PendingMessage:
        entry = PendingMessage(
            temp_id=temp_id or f"tmp-{uuid.uuid4().hex}",
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
        )
        self._entries[entry.temp_id] = entry
        return entry

    def resolve(self, temp_id: str) -> Optional[PendingMessage]:
        """The store accepted the entry; drop it from the ledger."""
        return self._entries.pop(temp_id, None)

    def rollback(self, temp_id: str) -> Optional[PendingMessage]:
        """The store refused the entry; drop it and hand it back."""
        return self._entries.pop(temp_id, None)

    def __contains__(self, temp_id: str) -> bool:
        return temp_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PendingMessage]:
        return iter(list(self._entries.values()))


def _sort_key(m: MessageOut):
    ts = m.created_at
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return (ts, m.id)


def _as_message(row: RowLike) -> MessageOut:
    if isinstance(row, MessageOut):
        return row
    return MessageOut.model_validate(row)


class ConversationView:
    def __init__(self, self_id: int, other_id: int, loader: Loader, sender: Sender):
        self.self_id = self_id
        self.other_id = other_id
        self._loader = loader
        self._sender = sender

        self.state = LoadState.LOADING
        self.error: Optional[str] = None
        # 전송 실패 시 내용을 복구해 두는 입력 버퍼
        self.draft = ""
        self.pending = PendingLedger()

        self._messages: List[MessageOut] = []
        self._keys: list = []
        self._ids: set = set()

    # ---------- snapshot ----------
    def load(self) -> LoadState:
        self.state = LoadState.LOADING
        self.error = None
        try:
            rows = list(self._loader(None))
        except Exception as e:
            logger.exception("conversation load failed: %s <-> %s", self.self_id, self.other_id)
            self.state = LoadState.ERROR
            self.error = str(e) or e.__class__.__name__
            return self.state

        self._messages, self._keys, self._ids = [], [], set()
        for row in rows:
            self._insert(_as_message(row))
        self.state = LoadState.READY if self._messages else LoadState.EMPTY
        return self.state

    def reconcile(self, since_id: Optional[int] = None) -> List[MessageOut]:
        """Fetch rows newer than ``since_id`` (default: the last confirmed id)
        and merge them.

        Used after (re)subscribing so nothing inserted while the consumer was
        away is lost. A reconnecting consumer that already holds everything up
        to ``since_id`` passes it explicitly. Returns the rows new to this view.
        """
        if since_id is None:
            since_id = self.last_id
        try:
            rows = list(self._loader(since_id))
        except Exception as e:
            logger.exception("conversation reconcile failed: %s <-> %s", self.self_id, self.other_id)
            self.state = LoadState.ERROR
            self.error = str(e) or e.__class__.__name__
            return []

        added = [m for m in (_as_message(r) for r in rows) if self._insert(m)]
        if self.state != LoadState.READY:
            self.state = LoadState.READY if (self._messages or since_id is not None) else LoadState.EMPTY
            self.error = None
        return added

    # ---------- live ----------
    def matches(self, row: RowLike) -> bool:
        data = row.model_dump() if isinstance(row, MessageOut) else row
        return messaging.in_pair(data, self.self_id, self.other_id)

    def apply(self, row: RowLike) -> bool:
        """Merge one inserted row. Returns True if it was new to the view."""
        if not self.matches(row):
            return False
        added = self._insert(_as_message(row))
        if added and self.state == LoadState.EMPTY:
            self.state = LoadState.READY
        return added

    def subscribe(self, feed: ChangeFeed) -> Subscription:
        return messaging.subscribe(feed, self.self_id, self.other_id, self.apply)

    # ---------- send ----------
    def send(self, content: str, temp_id: str = None) -> Optional[MessageOut]:
        text = (content or "").strip()
        if not text:
            return None

        entry = self.pending.add(self.self_id, self.other_id, text, temp_id=temp_id)
        self.draft = ""
        try:
            row = self._sender(text)
        except Exception:
            self.pending.rollback(entry.temp_id)
            self.draft = content
            raise

        self.pending.resolve(entry.temp_id)
        msg = _as_message(row)
        self._insert(msg)
        if self.state == LoadState.EMPTY:
            self.state = LoadState.READY
        return msg

    # ---------- views ----------
    @property
    def messages(self) -> List[MessageOut]:
        return list(self._messages)

    @property
    def entries(self) -> List[Union[MessageOut, PendingMessage]]:
        """Confirmed messages followed by in-flight ones."""
        return self.messages + list(self.pending)

    @property
    def last_id(self) -> Optional[int]:
        return max(self._ids) if self._ids else None

    def __len__(self) -> int:
        return len(self._messages)

    def _insert(self, msg: MessageOut) -> bool:
        if msg.id in self._ids:
            return False
        key = _sort_key(msg)
        idx = bisect.bisect_right(self._keys, key)
        self._keys.insert(idx, key)
        self._messages.insert(idx, msg)
        self._ids.add(msg.id)
        return True
