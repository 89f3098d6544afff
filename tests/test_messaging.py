import pytest

from marketplace.core.errors import NotFound, ValidationFailed
from marketplace.core.feed import ChangeFeed
from marketplace.models.message import Message
from marketplace.services import messaging


def _count(db):
    return db.query(Message).count()


def test_load_conversation_is_sorted_and_symmetric(db, make_user, make_message):
    a, b, c = make_user(), make_user(), make_user()
    make_message(a, b, "third", minutes=3)
    make_message(b, a, "first", minutes=1)
    make_message(a, c, "other pair", minutes=2)
    make_message(a, b, "second", minutes=2)

    ab = messaging.load_conversation(db, a.id, b.id)
    ba = messaging.load_conversation(db, b.id, a.id)

    assert [m.content for m in ab] == ["first", "second", "third"]
    assert [m.id for m in ab] == [m.id for m in ba]
    stamps = [m.created_at for m in ab]
    assert stamps == sorted(stamps)


def test_load_conversation_since_id(db, make_user, make_message):
    a, b = make_user(), make_user()
    m1 = make_message(a, b, "one", minutes=1)
    make_message(b, a, "two", minutes=2)

    rows = messaging.load_conversation(db, a.id, b.id, since_id=m1.id)
    assert [m.content for m in rows] == ["two"]


def test_partners_keep_newest_message_per_counterpart(db, make_user, make_message):
    a, b, c = make_user(), make_user(), make_user()
    make_message(a, b, "b old", minutes=1)
    newest_b = make_message(b, a, "b new", minutes=5)
    make_message(c, a, "c old", minutes=2)
    newest_c = make_message(a, c, "c new", minutes=3)
    make_message(b, c, "not mine", minutes=9)

    partners = messaging.list_conversation_partners(db, a.id)

    assert set(partners) == {b.id, c.id}
    assert partners[b.id].id == newest_b.id
    assert partners[c.id].id == newest_c.id


def test_send_message_persists_and_publishes(db, make_user):
    a, b = make_user(), make_user()
    feed = ChangeFeed()
    rows = []
    messaging.subscribe(feed, b.id, a.id, rows.append)

    msg = messaging.send_message(db, feed, a.id, b.id, "  hello there  ")

    assert msg.id is not None
    assert msg.content == "hello there"
    assert [r["id"] for r in rows] == [msg.id]
    assert rows[0]["sender_id"] == a.id


@pytest.mark.parametrize("content", ["", "   ", "\n\t"])
def test_blank_message_writes_nothing(db, make_user, content):
    a, b = make_user(), make_user()
    feed = ChangeFeed()
    rows = []
    feed.subscribe(messaging.TABLE, rows.append)

    with pytest.raises(ValidationFailed):
        messaging.send_message(db, feed, a.id, b.id, content)

    assert _count(db) == 0
    assert rows == []


def test_send_to_unknown_user(db, make_user):
    a = make_user()
    with pytest.raises(NotFound):
        messaging.send_message(db, ChangeFeed(), a.id, 999, "hello")


def test_subscribe_filters_other_pairs(db, make_user):
    a, b, c = make_user(), make_user(), make_user()
    feed = ChangeFeed()
    rows = []
    messaging.subscribe(feed, a.id, b.id, rows.append)

    messaging.send_message(db, feed, b.id, a.id, "to a")
    messaging.send_message(db, feed, c.id, a.id, "from c")
    messaging.send_message(db, feed, a.id, b.id, "to b")

    assert [r["content"] for r in rows] == ["to a", "to b"]
