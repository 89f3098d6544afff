# marketplace/services/profiles.py
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.core.errors import Conflict, NotFound
from marketplace.core.security import hash_password, verify_password
from marketplace.models.profile import Profile, User

logger = logging.getLogger(__name__)


def register(db: Session, email: str, password: str, username: str, name: str = "", phone=None, city=None) -> User:
    if db.execute(select(User.id).where(User.email == email)).first():
        raise Conflict("email_duplicate")
    if db.execute(select(Profile.id).where(Profile.username == username)).first():
        raise Conflict("username_duplicate")

    user = User(email=email, password_hash=hash_password(password))
    user.profile = Profile(username=username, name=name or "", phone=phone, city=city)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("account_exists")
    db.refresh(user)
    logger.info("user %s registered as %s", user.id, username)
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = db.execute(select(User).where(User.email == email)).scalars().first()
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def get_profile(db: Session, user_id: int) -> Profile:
    profile = db.get(Profile, user_id)
    if profile is None:
        raise NotFound("profile_not_found")
    return profile


def update_profile(db: Session, profile: Profile, data: dict) -> Profile:
    if "username" in data and data["username"] and data["username"] != profile.username:
        taken = db.execute(
            select(Profile.id).where(Profile.username == data["username"], Profile.id != profile.id)
        ).first()
        if taken:
            raise Conflict("username_duplicate")
        profile.username = data["username"]
    for key in ("name", "phone", "city"):
        if key in data:
            setattr(profile, key, data[key] if data[key] is not None else ("" if key == "name" else None))
    db.commit()
    db.refresh(profile)
    return profile


def set_avatar(db: Session, profile: Profile, url: str) -> Profile:
    profile.avatar_url = url
    db.commit()
    db.refresh(profile)
    return profile
