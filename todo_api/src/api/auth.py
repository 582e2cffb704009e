from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from .errors import unauthorized
from .models import AuthenticatedIdentity
from .tokens import TokenService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


# PUBLIC_INTERFACE
def resolve_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an Authorization header value.

    Returns None when the header is missing, lacks the 'Bearer ' prefix, or carries
    an empty token.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


# PUBLIC_INTERFACE
def authenticate_header(
    authorization: Optional[str], token_service: TokenService
) -> Optional[AuthenticatedIdentity]:
    """Resolve an Authorization header value to an identity, or None if it does not verify."""
    token = resolve_bearer_token(authorization)
    if token is None:
        return None
    user_id = token_service.verify(token)
    if user_id is None:
        return None
    return AuthenticatedIdentity(user_id=user_id, token=token)


# PUBLIC_INTERFACE
class BearerTokenMiddleware(BaseHTTPMiddleware):
    """
    Attach an AuthenticatedIdentity to `request.state.identity` when the request
    carries a valid bearer token.

    The middleware never rejects a request: a missing, malformed or invalid token
    simply leaves the identity unset, and endpoints that need one depend on
    `require_identity`.
    """

    def __init__(self, app, token_service: TokenService) -> None:
        super().__init__(app)
        self._token_service = token_service

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        identity = authenticate_header(request.headers.get("authorization"), self._token_service)
        request.state.identity = identity
        if identity is not None:
            logger.debug("Authenticated user %s", identity.user_id)
        return await call_next(request)


# PUBLIC_INTERFACE
def get_current_identity(request: Request) -> Optional[AuthenticatedIdentity]:
    """Return the identity installed for this request, or None if unauthenticated."""
    return getattr(request.state, "identity", None)


# PUBLIC_INTERFACE
def require_identity(
    identity: Optional[AuthenticatedIdentity] = Depends(get_current_identity),
) -> AuthenticatedIdentity:
    """
    FastAPI dependency for endpoints that need an authenticated caller.

    Raises:
        ApiProblem(401) when no valid bearer token was presented.
    """
    if identity is None:
        raise unauthorized("Authentication is required to access this resource.")
    return identity
