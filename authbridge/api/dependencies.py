"""Common request dependencies: database session, session-token auth, services."""
from typing import Annotated, Any, TypeAlias

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from authbridge.core.exceptions import AuthenticationError
from authbridge.core.security import TokenExpiredError, TokenValidationError, decode_session_token
from authbridge.db.session import get_db
from authbridge.services.account_service import AccountLinker
from authbridge.services.identity_store import IdentityStore
from authbridge.services.oauth import OAuthService, create_oauth_service

DbDep: TypeAlias = Annotated[Session, Depends(get_db)]


def get_session_claims(authorization: str = Header(None)) -> dict[str, Any]:
    """Verify the ``Authorization: Bearer <session token>`` header."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Missing session token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        return decode_session_token(token)
    except TokenExpiredError as exc:
        raise AuthenticationError("Session token expired", code="AUT303") from exc
    except TokenValidationError as exc:
        raise AuthenticationError() from exc


SessionClaimsDep: TypeAlias = Annotated[dict[str, Any], Depends(get_session_claims)]


def get_current_user_uuid(claims: SessionClaimsDep) -> str:
    return str(claims["sub"])


CurrentUserDep: TypeAlias = Annotated[str, Depends(get_current_user_uuid)]


def get_oauth_service(db: DbDep) -> OAuthService:
    return create_oauth_service(db)


OAuthServiceDep: TypeAlias = Annotated[OAuthService, Depends(get_oauth_service)]


def get_account_linker(db: DbDep) -> AccountLinker:
    return AccountLinker(IdentityStore(db))


AccountLinkerDep: TypeAlias = Annotated[AccountLinker, Depends(get_account_linker)]
