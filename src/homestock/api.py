"""FastAPI REST API for household inventory tracking."""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr, Field
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

# Load environment variables from .env file (find it relative to this file)
_env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(_env_path)

from .alerts import item_status
from .auth import (
    DUMMY_HASH,
    AccessTokenResponse,
    RefreshTokenRequest,
    Token,
    TokenData,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    validate_password,
    verify_password,
)
from .catalog import PREDEFINED_ITEMS, catalog_defaults, get_by_barcode
from .database.crud import create_user, get_user_by_email
from .database.engine import AsyncSessionLocal, close_db, init_db
from .database.store import InventoryStore
from .events import InventoryEvent, MutationDiagnostic, MutationResult, MutationStatus
from .inventory import AdapterRegistry, InventoryAdapter
from .schemas import InventoryItem
from .validation import ItemValidationError, validate_item

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class UserRegister(BaseModel):
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=8, description="User's password (min 8 characters)")


def _log_event(event: InventoryEvent) -> None:
    logger.info(f"{type(event).__name__}: {event.message}")


def _log_diagnostic(diagnostic: MutationDiagnostic) -> None:
    logger.warning(f"Store rejected {diagnostic.operation} at {diagnostic.path}: {diagnostic.error}")


registry = AdapterRegistry(
    InventoryStore(),
    listeners=[_log_event],
    diagnostic_listeners=[_log_diagnostic],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage database and subscription lifecycle."""
    logger.info("Starting HomeStock API...")
    await init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down...")
    registry.close_all()
    await close_db()


app = FastAPI(
    title="HomeStock API",
    description="Household inventory with low-stock and expiry alerts",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration from environment
_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
ALLOWED_ORIGINS = [origin.strip() for origin in _cors_origins.split(",") if origin.strip()]

_is_production = os.getenv("ENV", "development").lower() in ("production", "prod")
if _is_production and "*" in ALLOWED_ORIGINS:
    raise ValueError("CORS_ORIGINS cannot be '*' in production when credentials are enabled")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting
limiter = Limiter(key_func=get_remote_address, default_limits=["120/minute"])
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return JSON 429 with Retry-After header."""
    retry_after = exc.detail.split(" ")[-1] if exc.detail else "60"
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded"},
        headers={"Retry-After": retry_after},
    )


@app.exception_handler(ItemValidationError)
async def item_validation_handler(request: Request, exc: ItemValidationError) -> JSONResponse:
    """Return field-scoped validation messages as 422."""
    return JSONResponse(
        status_code=422,
        content={"detail": "Invalid item", "errors": exc.errors},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint - verifies DB connectivity."""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "dependencies": {"database": "healthy"},
        }
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "dependencies": {"database": "unhealthy"},
            },
        )


# ===== Authentication =====

# API router for versioned endpoints, mounted at both /api and /api/v1
api_router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_current_user(
    token: Annotated[str | None, Depends(oauth2_scheme)]
) -> TokenData:
    """Dependency to get the current authenticated user from JWT token."""
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_access_token(token)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token_data


def get_registry() -> AdapterRegistry:
    """Dependency returning the process-wide adapter registry."""
    return registry


async def get_adapter(
    current_user: Annotated[TokenData, Depends(get_current_user)],
    adapters: Annotated[AdapterRegistry, Depends(get_registry)],
) -> InventoryAdapter:
    """Resolve the started inventory adapter for the current user."""
    adapter = await adapters.get(current_user.user_id)
    if not adapter.is_subscribed:
        raise HTTPException(status_code=503, detail="Inventory is not available")
    return adapter


def _issue_tokens(user_id: str, email: Optional[str], is_anonymous: bool) -> Token:
    return Token(
        access_token=create_access_token(user_id, email, is_anonymous),
        refresh_token=create_refresh_token(user_id, email, is_anonymous),
        user_id=user_id,
    )


@api_router.post("/auth/anonymous", response_model=Token, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def sign_in_anonymously(request: Request):
    """Start an anonymous session backed by a fresh user id."""
    async with AsyncSessionLocal() as session:
        user = await create_user(session, is_anonymous=True)
    return _issue_tokens(user.id, None, True)


@api_router.post("/auth/register", response_model=Token, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def register(request: Request, user_data: UserRegister):
    """Register a new email/password account."""
    is_valid, error_msg = validate_password(user_data.password)
    if not is_valid:
        raise HTTPException(status_code=400, detail=error_msg)

    async with AsyncSessionLocal() as session:
        try:
            user = await create_user(session, user_data.email, hash_password(user_data.password))
        except IntegrityError:
            await session.rollback()
            raise HTTPException(status_code=400, detail="Email already registered")
    return _issue_tokens(user.id, user.email, False)


@api_router.post("/auth/login", response_model=Token)
@limiter.limit("10/minute")
async def login(request: Request, form_data: Annotated[OAuth2PasswordRequestForm, Depends()]):
    """Login with email and password.

    Uses a dummy hash for unknown emails so timing does not reveal accounts.
    """
    async with AsyncSessionLocal() as session:
        user = await get_user_by_email(session, form_data.username)

    password_hash = user.hashed_password if user and user.hashed_password else DUMMY_HASH
    password_valid = verify_password(form_data.password, password_hash)
    if not user or not password_valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _issue_tokens(user.id, user.email, False)


@api_router.post("/auth/refresh", response_model=AccessTokenResponse)
async def refresh_token(request: RefreshTokenRequest):
    """Get a new access token using a refresh token."""
    token_data = decode_refresh_token(request.refresh_token)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(token_data.user_id, token_data.email, token_data.is_anonymous)
    return AccessTokenResponse(access_token=access_token)


@api_router.get("/auth/me")
async def get_current_user_info(
    current_user: Annotated[TokenData, Depends(get_current_user)]
):
    """Get current authenticated user info."""
    return {
        "user_id": current_user.user_id,
        "email": current_user.email,
        "is_anonymous": current_user.is_anonymous,
    }


# ===== Item Endpoints =====


def _serialize_item(item: InventoryItem) -> dict[str, Any]:
    data = item.model_dump(mode="json")
    data["status"] = item_status(item).value
    return data


def _mutation_response(
    adapter: InventoryAdapter, result: MutationResult, success_code: int = status.HTTP_200_OK
) -> JSONResponse:
    if result.status is MutationStatus.SKIPPED:
        raise HTTPException(status_code=404, detail="Item not found")
    if result.status is MutationStatus.FAILED:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.reason)

    item = adapter.get_item(result.item_id) if result.item_id else None
    return JSONResponse(
        status_code=success_code,
        content={
            "status": "success",
            "message": result.message,
            "item": _serialize_item(item) if item else None,
        },
    )


@api_router.get("/items")
async def get_items(adapter: Annotated[InventoryAdapter, Depends(get_adapter)]):
    """List the current user's items, sorted by name."""
    items = adapter.items
    return {
        "is_loaded": adapter.is_loaded,
        "count": len(items),
        "items": [_serialize_item(item) for item in items],
    }


@api_router.post("/items")
async def create_new_item(
    adapter: Annotated[InventoryAdapter, Depends(get_adapter)],
    payload: Annotated[dict[str, Any], Body()],
):
    """Add a new item to the inventory."""
    form = validate_item(payload)
    result = await adapter.add_item(form.to_item_data())
    return _mutation_response(adapter, result, status.HTTP_201_CREATED)


@api_router.get("/items/{item_id}")
async def get_single_item(item_id: str, adapter: Annotated[InventoryAdapter, Depends(get_adapter)]):
    """Get one item by ID."""
    item = adapter.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return _serialize_item(item)


@api_router.put("/items/{item_id}")
async def update_existing_item(
    item_id: str,
    adapter: Annotated[InventoryAdapter, Depends(get_adapter)],
    payload: Annotated[dict[str, Any], Body()],
):
    """Replace an item's fields with a validated submission."""
    form = validate_item(payload)
    item = InventoryItem(id=item_id, **form.to_item_data().model_dump())
    result = await adapter.edit_item(item)
    return _mutation_response(adapter, result)


@api_router.delete("/items/{item_id}")
async def delete_existing_item(item_id: str, adapter: Annotated[InventoryAdapter, Depends(get_adapter)]):
    """Remove an item from the inventory."""
    result = await adapter.delete_item(item_id)
    return _mutation_response(adapter, result)


@api_router.get("/items/{item_id}/history")
async def get_item_history(item_id: str, adapter: Annotated[InventoryAdapter, Depends(get_adapter)]):
    """List an item's change history, oldest first. Works for deleted items."""
    entries = await adapter.item_history(item_id)
    return {
        "item_id": item_id,
        "count": len(entries),
        "history": [entry.model_dump(mode="json") for entry in entries],
    }


@api_router.get("/alerts")
async def get_alerts(adapter: Annotated[InventoryAdapter, Depends(get_adapter)]):
    """Low-stock and expiring-soon items."""
    alerts = adapter.alerts
    return {
        "low_stock": [_serialize_item(item) for item in alerts.low_stock],
        "expiring_soon": [_serialize_item(item) for item in alerts.expiring_soon],
        "total": alerts.total,
    }


# ===== Catalog Endpoints =====


@api_router.get("/catalog")
async def get_catalog():
    """List the predefined item catalog."""
    return {"items": [entry.model_dump() for entry in PREDEFINED_ITEMS]}


@api_router.get("/catalog/barcode/{barcode}")
async def lookup_barcode(barcode: str):
    """Look up a catalog entry by barcode, with the form auto-fill values."""
    entry = get_by_barcode(barcode)
    if entry is None:
        raise HTTPException(status_code=404, detail="Unknown barcode")
    return {"item": entry.model_dump(), "defaults": catalog_defaults(barcode=barcode)}


app.include_router(api_router, prefix="/api/v1")
app.include_router(api_router, prefix="/api")


def run_api():
    """Run the FastAPI server."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)  # nosec B104


if __name__ == "__main__":
    run_api()
