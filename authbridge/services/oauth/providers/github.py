"""GitHub OAuth apps."""
import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

from authbridge.models.identity_models import OAuthProviderID
from authbridge.models.schemas import OAuthUser

from .base import OAuthProvider

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
GITHUB_EMAILS_URL = "https://api.github.com/user/emails"


class GitHubUserPayload(BaseModel):
    id: int
    login: str = Field(..., min_length=1)
    email: str | None = None
    name: str | None = None
    avatar_url: str | None = None


def pick_github_email(emails: list[dict[str, Any]]) -> str | None:
    """Primary+verified address, else the first listed one."""
    for entry in emails:
        if entry.get("primary") and entry.get("verified") and entry.get("email"):
            return entry["email"]
    if emails and emails[0].get("email"):
        return emails[0]["email"]
    return None


class GitHubOAuthProvider(OAuthProvider):
    provider_id = OAuthProviderID.GITHUB
    display_name = "GitHub"
    payload_model = GitHubUserPayload
    send_response_type = False

    @property
    def authorization_url(self) -> str:
        return "https://github.com/login/oauth/authorize"

    @property
    def token_url(self) -> str:
        return "https://github.com/login/oauth/access_token"

    @property
    def user_info_url(self) -> str:
        return "https://api.github.com/user"

    @property
    def default_scopes(self) -> list[str]:
        return ["user:email"]

    def user_info_request_headers(self, access_token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "authbridge",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    async def complete_user_payload(
        self, client: httpx.AsyncClient, access_token: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        """Private emails are absent from ``/user``; look them up separately."""
        if payload.get("email"):
            return payload
        try:
            response = await client.get(GITHUB_EMAILS_URL, headers=self.user_info_request_headers(access_token))
            response.raise_for_status()
            emails = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("GitHub emails lookup failed | status=%s", e.response.status_code)
            return payload
        except (httpx.RequestError, ValueError) as e:
            logger.warning("GitHub emails lookup failed: %s", e)
            return payload
        if isinstance(emails, list):
            email = pick_github_email(emails)
            if email:
                return {**payload, "email": email}
        return payload

    def normalize(self, data: GitHubUserPayload) -> OAuthUser:
        email = data.email or f"{data.login}@users.noreply.github.com"
        return self._user(str(data.id), email, data.name or data.login, data.avatar_url)
