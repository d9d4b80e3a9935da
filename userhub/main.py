"""
FastAPI application and entry point.

This module creates and configures the FastAPI application:
  1. Logging: configured once, at LOG_LEVEL
  2. Lifespan manager: creates tables on startup, disposes the engine on shutdown
  3. Identity wiring: factory registry and memory accounts on app.state
  4. CORS middleware and exception handlers
  5. Router registration

Running locally:
    uvicorn userhub.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import userhub.models  # noqa: F401  (registers tables on Base.metadata)
from userhub.config import settings
from userhub.database import Base, engine
from userhub.exceptions import register_exception_handlers
from userhub.identity.factories import build_default_registry
from userhub.routers import auth, users
from userhub.stores.memory import load_memory_accounts


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Creates all database tables if they don't exist.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    Base.metadata.create_all(bind=engine)
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="User management and authentication across local, directory and memory realms",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Identity wiring (built once, shared by all requests)
# ---------------------------------------------------------------------------

app.state.factories = build_default_registry()
app.state.memory_accounts = load_memory_accounts(settings.MEMORY_USERS, app.state.factories)
# No directory client ships with the service; install one to enable LDAP logins
app.state.directory_authenticator = None

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/users", tags=["Users"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
