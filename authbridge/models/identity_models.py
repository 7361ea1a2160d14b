"""
Identity storage models.

A ``User`` is nothing more than a stable uuid; every way of signing in is an
``Account`` row keyed by ``(provider, identifier)``. The primary key on that
pair is what guarantees one external identity maps to at most one user.
"""
from __future__ import annotations

import datetime as dt
import enum
import uuid

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from authbridge.db.base_class import Base


class OAuthProviderID(str, enum.Enum):
    GOOGLE = "google"
    APPLE = "apple"
    MICROSOFT = "microsoft"
    FACEBOOK = "facebook"
    GITHUB = "github"
    X = "x"
    LINKEDIN = "linkedin"
    DISCORD = "discord"
    KAKAO = "kakao"
    NAVER = "naver"


def _new_uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_uuid)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    accounts: Mapped[list[Account]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Account(Base):
    __table_args__ = (Index("accounts_uuid_index", "uuid"),)

    provider: Mapped[str] = mapped_column(String(32), primary_key=True)
    identifier: Mapped[str] = mapped_column(String(255), primary_key=True)
    uuid: Mapped[str] = mapped_column(String(36), ForeignKey("users.uuid", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped[User] = relationship(back_populates="accounts")
