import base64
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from marketplace.core import db as core_db

# 테스트는 항상 in-memory SQLite
core_db.init_engine("sqlite://", poolclass=StaticPool)

from marketplace.core.db import Base, SessionLocal  # noqa: E402
from marketplace.core.feed import ChangeFeed, get_feed  # noqa: E402
from marketplace.core.security import create_access_token  # noqa: E402
from marketplace.main import app  # noqa: E402
from marketplace.models import listing, message, offer, profile, report, saved  # noqa: E402,F401
from marketplace.models.listing import Listing, ListingImage, ListingStatus  # noqa: E402
from marketplace.models.message import Message  # noqa: E402
from marketplace.models.profile import Profile, User  # noqa: E402
from marketplace.services.storage import ObjectStore, get_object_store  # noqa: E402

_seq = count(1)

# 1x1 PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class RecordingStore(ObjectStore):
    def __init__(self, fail: bool = False):
        self.objects = {}
        self.fail = fail

    def upload(self, path, data, overwrite=False, content_type=None):
        from marketplace.services.storage import UploadFailed

        if self.fail:
            raise UploadFailed("upload_failed")
        if path in self.objects and not overwrite:
            raise UploadFailed("object_exists", status_code=409)
        self.objects[path] = data

    def get_public_url(self, path):
        return f"https://blob.test.local/listing-images/{path}"


@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(bind=core_db.engine)
    yield
    Base.metadata.drop_all(bind=core_db.engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def feed():
    f = ChangeFeed()
    app.dependency_overrides[get_feed] = lambda: f
    yield f
    app.dependency_overrides.pop(get_feed, None)


@pytest.fixture
def store():
    s = RecordingStore()
    app.dependency_overrides[get_object_store] = lambda: s
    yield s
    app.dependency_overrides.pop(get_object_store, None)


@pytest.fixture
def client(feed, store):
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(username=None, is_admin=False, banned=False, name=None):
        n = next(_seq)
        username = username or f"user{n}"
        u = User(email=f"{username}@market.io", password_hash="not-a-real-hash")
        u.profile = Profile(
            username=username,
            name=name if name is not None else username.title(),
            is_admin=is_admin,
            banned=banned,
        )
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    return _make


@pytest.fixture
def make_listing(db):
    def _make(owner, price=1000, status=ListingStatus.ACTIVE, title="Road bike", **kw):
        l = Listing(
            user_id=owner.id,
            title=title,
            description=kw.get("description", "Lightly used"),
            price=Decimal(str(price)),
            category=kw.get("category", "Sports"),
            condition=kw.get("condition", "good"),
            location=kw.get("location", "Berlin"),
            status=status,
            cover_image="https://img.test.local/cover.jpg",
            banner_image="https://img.test.local/banner.jpg",
        )
        l.gallery = [ListingImage(ord=0, url="https://img.test.local/g0.jpg")]
        db.add(l)
        db.commit()
        db.refresh(l)
        return l

    return _make


@pytest.fixture
def make_message(db):
    base = datetime(2026, 1, 1, 12, 0, 0)

    def _make(sender, receiver, content="hi", minutes=0):
        m = Message(
            sender_id=sender.id,
            receiver_id=receiver.id,
            content=content,
            created_at=base + timedelta(minutes=minutes),
        )
        db.add(m)
        db.commit()
        db.refresh(m)
        return m

    return _make


def auth_header(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(sub=str(user.id))}"}


@pytest.fixture
def auth():
    return auth_header


def utcnow():
    return datetime.now(timezone.utc)


@pytest.fixture
def png():
    return PNG_BYTES
