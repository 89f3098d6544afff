# marketplace/core/feed.py
"""In-process row change feed.

Services publish a row's field values after the insert has been committed.
Subscribers register per table, optionally with a predicate that decides
whether a row is of interest to them. Filtering happens at the consumer,
the transport only fans rows out.
"""
import itertools
import logging
import threading
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Handler = Callable[[Row], None]
Predicate = Callable[[Row], bool]

INSERT = "INSERT"


class Subscription:
    def __init__(self, feed: "ChangeFeed", sub_id: int, table: str):
        self._feed = feed
        self.id = sub_id
        self.table = table
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._feed._remove(self)
            self.active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        # table -> sub_id -> (handler, predicate)
        self._subs: Dict[str, Dict[int, tuple]] = {}

    def subscribe(
        self,
        table: str,
        handler: Handler,
        predicate: Optional[Predicate] = None,
    ) -> Subscription:
        with self._lock:
            sub_id = next(self._ids)
            self._subs.setdefault(table, {})[sub_id] = (handler, predicate)
        logger.debug("subscribed #%s to %s", sub_id, table)
        return Subscription(self, sub_id, table)

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            table_subs = self._subs.get(sub.table)
            if table_subs is not None:
                table_subs.pop(sub.id, None)
                if not table_subs:
                    self._subs.pop(sub.table, None)
        logger.debug("unsubscribed #%s from %s", sub.id, sub.table)

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subs.get(table, {}))

    def publish(self, table: str, row: Row, event: str = INSERT) -> int:
        """Deliver ``row`` to every matching subscriber of ``table``.

        Returns the number of handlers that received the row. A failing
        handler is logged and does not stop delivery to the others.
        """
        with self._lock:
            targets = list(self._subs.get(table, {}).items())

        delivered = 0
        for sub_id, (handler, predicate) in targets:
            try:
                if predicate is not None and not predicate(row):
                    continue
                handler(row)
                delivered += 1
            except Exception:
                logger.exception("feed handler #%s failed on %s %s", sub_id, event, table)
        return delivered


# 프로세스 전체에서 공유하는 feed
feed = ChangeFeed()


def get_feed() -> ChangeFeed:
    return feed
