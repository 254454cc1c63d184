from __future__ import annotations

import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import urlencode

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shoplist.auth.google_login import (
    build_login_flow,
    fetch_google_profile,
    is_login_configured,
    login_redirect_uri,
)
from shoplist.auth.jwt import (
    TOKEN_COOKIE,
    create_access_token,
    get_current_user,
    get_optional_user,
)
from shoplist.db.database import dispose_engine, get_db, ping_database
from shoplist.db.models import ListItem, ShoppingList, User
from shoplist.models.product import ProductCreate, ProductRead, ProductUpdate
from shoplist.models.shopping_list import (
    ListCreate,
    ListItemCreate,
    ListItemUpdate,
    ListUpdate,
    ShoppingListRead,
)
from shoplist.models.suggestion import SuggestionResponse
from shoplist.services.ai_service import GeminiService
from shoplist.services.list_manager import ProductNotOwnedError, list_manager
from shoplist.services.product_manager import product_manager

# Load environment variables (override=True ensures .env wins over any shell env vars)
load_dotenv(override=True)

_COOKIE_MAX_AGE = 60 * 60 * 24 * 7  # 7 days, matches the JWT lifetime

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize services
ai_service = GeminiService()


def _client_url() -> str:
    return os.getenv("CLIENT_URL", "http://localhost:5173").rstrip("/")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle context manager"""
    logger.info("Application starting up (AI mode: %s)", ai_service.mode)
    yield
    logger.info("Application shutting down")
    await dispose_engine()


# Create FastAPI app
app = FastAPI(
    title="Shopping List API",
    description="Grocery master list and shopping lists with AI suggestions",
    version="0.1.0",
    lifespan=lifespan,
)

# Explicit origins required when the client sends credentials (cookies)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(dict.fromkeys([_client_url(), "http://localhost:5173"])),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Auth helpers
# ============================================================================


async def _upsert_user(
    db: AsyncSession, google_id: str, email: str, name: str, picture: Optional[str]
) -> User:
    """Insert or update a User row based on google_id, and record the login."""
    result = await db.execute(select(User).where(User.google_id == google_id))
    user = result.scalar_one_or_none()
    if user is None:
        logger.info("Creating new user for: %s", email)
        user = User(google_id=google_id, email=email, name=name, picture=picture)
        db.add(user)
    else:
        logger.info("Existing user found: %s", email)
        user.email = email
        user.name = name
        user.picture = picture
    user.touch_login()
    await db.commit()
    await db.refresh(user)
    return user


def _user_payload(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "picture": user.picture,
    }


def _login_error_redirect(error: str, message: Optional[str] = None) -> RedirectResponse:
    params = {"error": error}
    if message:
        params["message"] = message
    response = RedirectResponse(url=f"{_client_url()}/login?{urlencode(params)}", status_code=302)
    response.delete_cookie("login_state")
    return response


async def _require_list(list_id: str, current_user: User, db: AsyncSession) -> ShoppingList:
    row = await list_manager.get_list(list_id, current_user.id, db)
    if row is None:
        raise HTTPException(status_code=404, detail="List not found")
    return row


def _require_item(row: ShoppingList, item_id: str) -> ListItem:
    try:
        iid = uuid.UUID(item_id)
    except ValueError:
        iid = None
    item = row.get_item(iid) if iid is not None else None
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


# ============================================================================
# Service Endpoints
# ============================================================================


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Shopping List API is running"


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "ai_mode": ai_service.mode}


# ============================================================================
# Login OAuth Endpoints
# ============================================================================


@app.get("/api/auth/google")
async def login():
    """Redirect the browser to Google's OAuth consent page for login."""
    if not is_login_configured():
        raise HTTPException(
            status_code=503,
            detail="Google login OAuth is not configured.",
        )
    flow = build_login_flow()
    auth_url, state = flow.authorization_url(access_type="online", prompt="select_account")
    response = RedirectResponse(url=auth_url, status_code=302)
    # Store state in a short-lived httpOnly cookie for CSRF verification on callback
    response.set_cookie("login_state", state, httponly=True, max_age=600, samesite="lax")
    return response


@app.get("/api/auth/google/callback")
async def auth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """OAuth callback: exchange code, upsert user, set JWT cookie, redirect to the client."""
    if error or not code:
        logger.error("Google returned no authorization code: %s", error)
        return _login_error_redirect("auth_error", error or "missing_code")

    stored_state = request.cookies.get("login_state")
    if not stored_state or stored_state != state:
        logger.error("Login OAuth state mismatch")
        return _login_error_redirect("auth_error", "Invalid state parameter")

    try:
        flow = build_login_flow()
        flow.fetch_token(code=code)
        user_info = await fetch_google_profile(flow.credentials.token)
    except Exception as exc:
        logger.error("Login OAuth failed: %s", exc)
        return _login_error_redirect("auth_error", str(exc))

    google_id = user_info.get("sub")
    if not google_id:
        logger.error("No user returned from Google auth")
        return _login_error_redirect("no_user")

    email = user_info.get("email", "")
    try:
        user = await _upsert_user(
            db,
            google_id=google_id,
            email=email,
            name=user_info.get("name") or email,
            picture=user_info.get("picture"),
        )
    except Exception as exc:
        logger.error("Failed to save user %s: %s", email, exc)
        return _login_error_redirect("auth_error", "Could not save user")

    try:
        token = create_access_token(user)
    except Exception as exc:
        logger.error("Token generation error: %s", exc)
        return _login_error_redirect("token_error")

    logger.info(
        "Setting auth cookie for user %s (origin=%s, referer=%s)",
        user.email,
        request.headers.get("origin"),
        request.headers.get("referer"),
    )
    # The token also rides in the redirect URL; mobile browsers that block
    # cross-site cookies send it back as a bearer header.
    response = RedirectResponse(
        url=f"{_client_url()}?{urlencode({'auth': 'success', 'token': token})}",
        status_code=302,
    )
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        httponly=True,
        secure=True,  # required for SameSite=None
        samesite="none",
        max_age=_COOKIE_MAX_AGE,
        path="/",
    )
    response.delete_cookie("login_state")
    return response


@app.get("/api/auth/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the currently authenticated user's info."""
    return _user_payload(current_user)


@app.post("/api/auth/logout")
async def logout():
    """Clear the auth cookie."""
    response = JSONResponse({"message": "Logged out successfully"})
    response.delete_cookie(TOKEN_COOKIE, path="/", secure=True, httponly=True, samesite="none")
    return response


@app.get("/api/auth/status")
async def auth_status(request: Request, db: AsyncSession = Depends(get_db)):
    """Report whether the caller is signed in. Never fails; errors read as signed out."""
    try:
        user = await get_optional_user(request, db)
    except Exception as exc:
        logger.error("Auth status error: %s", exc)
        return {"authenticated": False}
    if user is None:
        return {"authenticated": False}
    return {"authenticated": True, "user": _user_payload(user)}


@app.get("/api/auth/debug")
async def auth_debug():
    """Which pieces of configuration are present (never their values)."""
    return {
        "has_google_client_id": bool(os.getenv("GOOGLE_CLIENT_ID")),
        "has_google_client_secret": bool(os.getenv("GOOGLE_CLIENT_SECRET")),
        "has_jwt_secret": bool(os.getenv("JWT_SECRET")),
        "has_database_url": bool(os.getenv("DATABASE_URL")),
        "client_url": _client_url(),
        "callback_url": login_redirect_uri(),
        "environment": os.getenv("APP_ENV", "development"),
        "ai_mode": ai_service.mode,
    }


@app.get("/api/auth/diagnostic")
async def auth_diagnostic(db: AsyncSession = Depends(get_db)):
    """Time a database round trip and a user count; useful on cold starts."""
    start = time.monotonic()
    logs: list[str] = []

    def log(msg: str) -> None:
        elapsed = int((time.monotonic() - start) * 1000)
        logs.append(f"[{elapsed}ms] {msg}")
        logger.info("[DIAG %dms] %s", elapsed, msg)

    log("Starting diagnostic")
    try:
        log("Attempting to connect...")
        await ping_database()
        log("Connection established")

        log("Testing database query...")
        user_count = (await db.execute(select(func.count()).select_from(User))).scalar_one()
        log(f"User count: {user_count}")
    except Exception as exc:
        log(f"Error: {exc}")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "error": str(exc), "logs": logs},
        )

    total_ms = int((time.monotonic() - start) * 1000)
    log(f"Diagnostic complete in {total_ms}ms")
    return {
        "status": "ok",
        "total_time_ms": total_ms,
        "database": "connected",
        "user_count": user_count,
        "logs": logs,
    }


# ============================================================================
# Product (Master List) Endpoints
# ============================================================================


@app.get("/api/products", response_model=list[ProductRead])
async def list_products(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All of the user's catalog products, sorted by name."""
    rows = await product_manager.list_products(current_user.id, db)
    return [ProductRead.model_validate(r) for r in rows]


@app.post("/api/products", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await product_manager.create_product(current_user.id, data, db)
    return ProductRead.model_validate(row)


@app.get("/api/products/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await product_manager.get_product(product_id, current_user.id, db)
    if row is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductRead.model_validate(row)


@app.patch("/api/products/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: str,
    data: ProductUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await product_manager.update_product(product_id, current_user.id, data, db)
    if row is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductRead.model_validate(row)


@app.delete("/api/products/{product_id}")
async def delete_product(
    product_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a product. List items that referenced it keep their place without it."""
    deleted = await product_manager.delete_product(product_id, current_user.id, db)
    if not deleted:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"message": "Product deleted"}


# ============================================================================
# Shopping List Endpoints
# ============================================================================


@app.get("/api/lists", response_model=list[ShoppingListRead])
async def list_lists(
    include_archived: bool = False,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The user's lists, newest first. Archived lists are hidden unless asked for."""
    rows = await list_manager.list_lists(current_user.id, db, include_archived=include_archived)
    return [ShoppingListRead.from_row(r) for r in rows]


@app.post("/api/lists", response_model=ShoppingListRead, status_code=status.HTTP_201_CREATED)
async def create_list(
    data: ListCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await list_manager.create_list(current_user.id, data.name, db)
    return ShoppingListRead.from_row(row)


@app.get("/api/lists/active", response_model=ShoppingListRead)
async def get_active_list(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The most recent active list, created on first use."""
    row = await list_manager.get_or_create_active(current_user.id, db)
    return ShoppingListRead.from_row(row)


@app.get("/api/lists/{list_id}", response_model=ShoppingListRead)
async def get_list(
    list_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await _require_list(list_id, current_user, db)
    return ShoppingListRead.from_row(row)


@app.patch("/api/lists/{list_id}", response_model=ShoppingListRead)
async def update_list(
    list_id: str,
    data: ListUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await _require_list(list_id, current_user, db)
    row = await list_manager.update_list(row, data, db)
    return ShoppingListRead.from_row(row)


@app.delete("/api/lists/{list_id}")
async def delete_list(
    list_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await _require_list(list_id, current_user, db)
    await list_manager.delete_list(row, db)
    return {"message": "List deleted"}


@app.post("/api/lists/{list_id}/archive", response_model=ShoppingListRead)
async def archive_list(
    list_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await _require_list(list_id, current_user, db)
    row = await list_manager.set_archived(row, True, db)
    return ShoppingListRead.from_row(row)


@app.post("/api/lists/{list_id}/unarchive", response_model=ShoppingListRead)
async def unarchive_list(
    list_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await _require_list(list_id, current_user, db)
    row = await list_manager.set_archived(row, False, db)
    return ShoppingListRead.from_row(row)


# ============================================================================
# List Item Endpoints
# ============================================================================


@app.post("/api/lists/{list_id}/items", response_model=ShoppingListRead)
async def add_list_item(
    list_id: str,
    data: ListItemCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Add an item; an existing line for the same product or name has its quantity bumped."""
    row = await _require_list(list_id, current_user, db)
    try:
        row = await list_manager.add_item(row, data, db)
    except ProductNotOwnedError:
        raise HTTPException(status_code=404, detail="Product not found")
    return ShoppingListRead.from_row(row)


@app.patch("/api/lists/{list_id}/items/{item_id}", response_model=ShoppingListRead)
async def update_list_item(
    list_id: str,
    item_id: str,
    data: ListItemUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await _require_list(list_id, current_user, db)
    item = _require_item(row, item_id)
    row = await list_manager.update_item(row, item, data, db)
    return ShoppingListRead.from_row(row)


@app.delete("/api/lists/{list_id}/items/{item_id}", response_model=ShoppingListRead)
async def remove_list_item(
    list_id: str,
    item_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await _require_list(list_id, current_user, db)
    item = _require_item(row, item_id)
    row = await list_manager.remove_item(row, item.id, db)
    return ShoppingListRead.from_row(row)


@app.post("/api/lists/{list_id}/clear-completed", response_model=ShoppingListRead)
async def clear_completed_items(
    list_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await _require_list(list_id, current_user, db)
    row = await list_manager.clear_completed(row, db)
    return ShoppingListRead.from_row(row)


# ============================================================================
# AI Endpoints
# ============================================================================


@app.post("/api/ai/suggest", response_model=SuggestionResponse)
async def suggest_products(
    list_id: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Suggest products to buy; products already on `list_id` are left out."""
    products = await product_manager.list_products(current_user.id, db)
    if list_id:
        row = await _require_list(list_id, current_user, db)
        on_list = {i.product_id for i in row.items if i.product_id is not None}
        products = [p for p in products if p.id not in on_list]

    try:
        suggestions = await ai_service.suggest_products(products)
    except Exception as exc:
        logger.error("AI Error: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to generate suggestions")
    return SuggestionResponse(suggestions=suggestions)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
