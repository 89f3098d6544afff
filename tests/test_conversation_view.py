from datetime import datetime, timedelta

import pytest

from marketplace.core.feed import ChangeFeed
from marketplace.services import messaging
from marketplace.services.conversation import ConversationView, LoadState

A, B, C = 1, 2, 3
T0 = datetime(2026, 3, 1, 9, 0, 0)


def row(id, sender, receiver, minutes, content=None):
    return {
        "id": id,
        "sender_id": sender,
        "receiver_id": receiver,
        "content": content or f"m{id}",
        "created_at": (T0 + timedelta(minutes=minutes)).isoformat(),
    }


class FakeStore:
    def __init__(self, rows=None, fail_load=False, fail_send=False):
        self.rows = list(rows or [])
        self.fail_load = fail_load
        self.fail_send = fail_send
        self.sent = []

    def load(self, since_id):
        if self.fail_load:
            raise ConnectionError("store unreachable")
        rows = [r for r in self.rows if since_id is None or r["id"] > since_id]
        return sorted(rows, key=lambda r: (r["created_at"], r["id"]))

    def send(self, text):
        if self.fail_send:
            raise ConnectionError("insert failed")
        new = row(100 + len(self.sent), A, B, 60 + len(self.sent), text)
        self.sent.append(new)
        self.rows.append(new)
        return new


def make_view(store):
    return ConversationView(A, B, loader=store.load, sender=store.send)


def test_load_states():
    assert make_view(FakeStore()).load() == LoadState.EMPTY
    assert make_view(FakeStore([row(1, A, B, 0)])).load() == LoadState.READY

    view = make_view(FakeStore(fail_load=True))
    assert view.load() == LoadState.ERROR
    assert "unreachable" in view.error
    assert view.messages == []


def test_out_of_order_arrival_renders_by_created_at():
    view = make_view(FakeStore())
    view.load()

    later, earlier = row(2, B, A, 2), row(1, A, B, 1)
    assert view.apply(later)
    assert view.apply(earlier)

    assert [m.id for m in view.messages] == [1, 2]
    assert view.state == LoadState.READY


def test_apply_ignores_duplicates_and_other_pairs():
    view = make_view(FakeStore([row(1, A, B, 0)]))
    view.load()

    assert not view.apply(row(1, A, B, 0))
    assert not view.apply(row(5, C, A, 1))
    assert not view.apply(row(6, B, C, 1))
    assert len(view) == 1


def test_send_blank_is_a_local_noop():
    store = FakeStore()
    view = make_view(store)
    view.load()

    assert view.send("   ") is None
    assert store.sent == []
    assert view.entries == []


def test_send_resolves_pending_entry():
    store = FakeStore()
    view = make_view(store)
    view.load()

    msg = view.send(" hello ", temp_id="tmp-1")

    assert msg.content == "hello"
    assert "tmp-1" not in view.pending
    assert len(view.pending) == 0
    assert [m.id for m in view.messages] == [msg.id]
    assert view.state == LoadState.READY


def test_failed_send_rolls_back_and_restores_draft():
    store = FakeStore(fail_send=True)
    view = make_view(store)
    view.load()
    view.apply(row(1, B, A, 0))

    with pytest.raises(ConnectionError):
        view.send("are you there?", temp_id="tmp-9")

    assert view.draft == "are you there?"
    assert len(view.pending) == 0
    assert [m.id for m in view.messages] == [1]


def test_pending_entry_visible_while_in_flight():
    seen = {}
    view = ConversationView(A, B, loader=lambda since: [], sender=None)

    def sender(text):
        seen["entries"] = [getattr(e, "temp_id", None) for e in view.entries]
        return row(10, A, B, 5, text)

    view._sender = sender
    view.load()
    view.send("hi", temp_id="tmp-x")

    assert seen["entries"] == ["tmp-x"]
    assert [m.id for m in view.entries] == [10]


def test_feed_echo_of_own_send_is_not_duplicated():
    feed = ChangeFeed()
    store = FakeStore()

    def sender(text):
        new = store.send(text)
        feed.publish(messaging.TABLE, new)
        return new

    view = ConversationView(A, B, loader=store.load, sender=sender)
    view.load()
    view.subscribe(feed)

    view.send("once")
    assert len(view) == 1


def test_reconcile_after_missed_rows():
    store = FakeStore([row(1, A, B, 0), row(2, B, A, 1)])
    view = make_view(store)
    view.load()

    # 연결이 끊긴 사이 들어온 row
    store.rows.append(row(3, B, A, 2))
    store.rows.append(row(4, A, B, 3))

    added = view.reconcile()
    assert [m.id for m in added] == [3, 4]
    assert [m.id for m in view.messages] == [1, 2, 3, 4]
    assert view.reconcile() == []


def test_reconcile_from_explicit_since():
    store = FakeStore([row(1, A, B, 0), row(2, B, A, 1), row(3, B, A, 2)])
    view = make_view(store)

    added = view.reconcile(since_id=2)
    assert [m.id for m in added] == [3]
    assert view.state == LoadState.READY


def test_subscription_applies_live_rows():
    feed = ChangeFeed()
    view = make_view(FakeStore())
    view.load()
    sub = view.subscribe(feed)

    feed.publish(messaging.TABLE, row(2, B, A, 2))
    feed.publish(messaging.TABLE, row(3, C, A, 3))
    feed.publish(messaging.TABLE, row(1, A, B, 1))
    sub.unsubscribe()
    feed.publish(messaging.TABLE, row(4, B, A, 4))

    assert [m.id for m in view.messages] == [1, 2]
