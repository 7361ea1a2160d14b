"""Account linking and session schemas."""
from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class SocialLoginResult(BaseModel):
    user_uuid: str
    is_new_user: bool
    is_new_account: bool


class LinkAccountResult(BaseModel):
    success: bool
    already_linked: bool


class ProviderTokenIn(BaseModel):
    """A provider access token presented directly by a client."""
    provider: str
    access_token: str = Field(..., min_length=1)


class SessionTokenOut(BaseModel):
    token: str
    token_type: str = "Bearer"
    expires_in: int


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    provider: str
    identifier: str
    created_at: dt.datetime | None = None


class SessionOut(BaseModel):
    uuid: str
    expires_at: int
    accounts: list[AccountOut]


class UnlinkAccountOut(BaseModel):
    unlinked: bool


class ProviderOut(BaseModel):
    name: str
    display_name: str
    supports_pkce: bool
    authorize_url: str


class ProvidersOut(BaseModel):
    providers: list[ProviderOut]
