# marketplace/models/profile.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from marketplace.core.db import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    profile = relationship("Profile", back_populates="user", uselist=False, lazy="joined")


class Profile(Base):
    __tablename__ = "profiles"

    # users.id 와 1:1
    id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False, default="")
    phone = Column(String(30), nullable=True)
    city = Column(String(100), nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    banned = Column(Boolean, nullable=False, default=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="profile")

    @property
    def display_name(self) -> str:
        return self.name or self.username
