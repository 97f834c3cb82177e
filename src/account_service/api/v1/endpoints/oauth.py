"""Google sign-in endpoints.

Provides:
- GET /auth/oauth/start redirecting the browser to Google
- GET /auth/oauth/callback completing the redirect flow
- POST /auth/oauth/mobile for ID tokens obtained by native clients

The redirect flow carries no server-side session: ``state`` is a short
lived token signed by this service and checked on the way back.
"""

# No postponed annotations: the rate limiter wraps route functions.

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse

from account_service.api.dependencies import (
    get_app_settings,
    get_federated_authenticator,
    get_session_issuer,
)
from account_service.auth.dependencies import get_token_codec
from account_service.auth.jwt import TokenCodec, TokenError
from account_service.cache.rate_limit import rate_limit_auth
from account_service.core.config import Settings
from account_service.core.exceptions import InvalidCredentialsException
from account_service.observability.logging import get_logger
from account_service.schemas import AuthResponse, GoogleMobileRequest
from account_service.services.auth import FederatedAuthenticator, SessionIssuer


logger = get_logger(__name__)

router = APIRouter(prefix="/auth/oauth", tags=["OAuth"])


@router.get(
    "/start",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Start Google sign-in",
    responses={503: {"description": "Google sign-in is not configured"}},
)
async def oauth_start(
    settings: Annotated[Settings, Depends(get_app_settings)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    federation: Annotated[FederatedAuthenticator, Depends(get_federated_authenticator)],
) -> RedirectResponse:
    """Redirect to the Google consent screen."""
    state = codec.issue_state(timedelta(seconds=settings.auth.google.state_ttl_seconds))
    url = federation.authorization_url(state)
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get(
    "/callback",
    response_model=AuthResponse,
    summary="Complete Google sign-in",
    responses={
        401: {"description": "Sign-in cancelled, state rejected or code invalid"},
        409: {"description": "Google account already linked elsewhere"},
    },
)
async def oauth_callback(
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    federation: Annotated[FederatedAuthenticator, Depends(get_federated_authenticator)],
    sessions: Annotated[SessionIssuer, Depends(get_session_issuer)],
    code: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
    error: Annotated[str | None, Query()] = None,
) -> AuthResponse:
    """Exchange the authorization code and open a session."""
    if error is not None:
        logger.info("Google sign-in cancelled", reason=error)
        raise InvalidCredentialsException("Authentication failed")
    if not code or not state:
        raise InvalidCredentialsException("Authentication failed")

    try:
        codec.verify_state(state)
    except TokenError as e:
        logger.info("OAuth state rejected", reason=str(e))
        raise InvalidCredentialsException("Authentication failed") from e

    account = await federation.authenticate_code(code)
    pair = await sessions.issue_session_for(account)
    return AuthResponse.from_session(account, pair)


@router.post(
    "/mobile",
    response_model=AuthResponse,
    summary="Sign in with a Google ID token",
    responses={
        401: {"description": "Invalid Google ID token or unverified email"},
        409: {"description": "Google account already linked elsewhere"},
        429: {"description": "Too many requests"},
    },
)
@rate_limit_auth()
async def oauth_mobile(
    request: Request,
    body: GoogleMobileRequest,
    federation: Annotated[FederatedAuthenticator, Depends(get_federated_authenticator)],
    sessions: Annotated[SessionIssuer, Depends(get_session_issuer)],
) -> AuthResponse:
    """Verify an ID token issued to one of our client ids and open a session."""
    account = await federation.authenticate_id_token(body.id_token)
    pair = await sessions.issue_session_for(account)
    return AuthResponse.from_session(account, pair)
