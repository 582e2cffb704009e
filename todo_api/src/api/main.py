from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .auth import BearerTokenMiddleware
from .errors import register_exception_handlers
from .logging_config import configure_logging
from .middleware import RequestLoggingMiddleware
from .repositories import InMemoryRepository
from .routers import auth as auth_router
from .routers import todos as todos_router
from .settings import Settings, get_settings
from .tokens import TokenService
from .users import UserStore, build_password_hasher

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "User registration, login and bearer token issuance."},
    {"name": "todos", "description": "CRUD, completion and bulk operations for Todo items."},
]


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application with its own in-memory stores and token service.

    Each call returns an independent app; nothing is shared between instances.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Todo API",
        description="Todo management API protected by stateless bearer-token authentication.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )

    token_service = TokenService(
        secret=settings.jwt_secret,
        lifetime_seconds=settings.jwt_expiration_seconds,
        issuer=settings.jwt_issuer,
    )
    app.state.settings = settings
    app.state.token_service = token_service
    app.state.todo_repository = InMemoryRepository()
    app.state.user_store = UserStore(
        build_password_hasher(settings.password_hash_time_cost, settings.password_hash_memory_cost)
    )

    # Added last runs first: CORS, then request logging, then bearer authentication.
    app.add_middleware(BearerTokenMiddleware, token_service=token_service)
    app.add_middleware(RequestLoggingMiddleware)
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Location"],
    )

    register_exception_handlers(app)

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "issuer": settings.jwt_issuer}

    app.include_router(auth_router.router)
    app.include_router(todos_router.router)

    logger.info(
        "Todo API initialised (issuer=%s, token lifetime=%ss)",
        settings.jwt_issuer,
        settings.jwt_expiration_seconds,
    )
    return app


app = create_app()
