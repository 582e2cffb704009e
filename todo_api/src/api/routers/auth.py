from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from ..auth import require_identity
from ..errors import conflict, not_found, unauthorized
from ..models import AuthenticatedIdentity, UserEntity
from ..schemas import ApiResponse, LoginRequest, RegisterRequest, TokenOut, UserOut
from ..tokens import TokenService, get_token_service
from ..users import UserStore, get_user_store
from ..utils import api_envelope

PREFIX = "/api/v1/auth"

router = APIRouter(
    prefix=PREFIX,
    tags=["auth"],
)


def _public_user(user: UserEntity) -> dict:
    return {"id": user["id"], "username": user["username"], "email": user["email"]}


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=ApiResponse[UserOut],
    status_code=status.HTTP_201_CREATED,
    summary="Register User",
    description="Create a user account. Usernames are unique.",
    responses={409: {"description": "Username already taken"}},
)
def register(
    request: Request,
    payload: RegisterRequest,
    users: UserStore = Depends(get_user_store),
):
    user = users.register(payload.username, payload.password, str(payload.email))
    if user is None:
        raise conflict(f"Username '{payload.username}' is already taken.")
    return api_envelope(request, _public_user(user), links={"login": f"{PREFIX}/login"})


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=ApiResponse[TokenOut],
    summary="Login",
    description="Exchange a username and password for a bearer access token.",
    responses={401: {"description": "Invalid username or password"}},
)
def login(
    request: Request,
    payload: LoginRequest,
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Unknown usernames and wrong passwords produce the same 401 response.
    """
    user = users.authenticate(payload.username, payload.password)
    if user is None:
        raise unauthorized("Invalid username or password.")
    data = {
        "token": tokens.issue(user),
        "token_type": "Bearer",
        "expires_in": tokens.lifetime_seconds,
        "user_id": user["id"],
        "username": user["username"],
    }
    return api_envelope(request, data, links={"self": f"{PREFIX}/login", "me": f"{PREFIX}/me"})


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=ApiResponse[UserOut],
    summary="Current User",
    description="Return the user identified by the bearer token.",
    responses={
        401: {"description": "Missing or invalid bearer token"},
        404: {"description": "User not found"},
    },
)
def me(
    request: Request,
    identity: AuthenticatedIdentity = Depends(require_identity),
    users: UserStore = Depends(get_user_store),
):
    user = users.find_by_id(identity.user_id)
    if user is None:
        raise not_found("User not found.")
    return api_envelope(request, _public_user(user), links={"self": f"{PREFIX}/me"})
