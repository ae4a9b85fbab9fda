import logging
from contextlib import asynccontextmanager
from urllib.parse import urlencode

from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from analogyai import analogies, database
from analogyai.config import Settings, get_settings
from analogyai.errors import AnalogyAIError, ConfigurationError, SignInError, ValidationError
from analogyai.llm import AnalogyLLM
from analogyai.schemas import (
    AnalogyOut,
    AnalogyRecord,
    FavoriteIn,
    FavoriteOut,
    FeedbackIn,
    FeedbackOut,
    GenerateAnalogyIn,
    HistoryOut,
    MessageOut,
    RegenerateAnalogyIn,
    UpdateProfileIn,
    UserRecord,
    UserUpsert,
)
from analogyai.storage import MemoryStorage, Storage, get_storage
from analogyai.auth import (
    build_identity_resolver,
    create_access_token,
    get_current_user,
    get_google_oauth_client,
    get_google_user_info,
)

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for app startup/shutdown."""
    logging.basicConfig(level=settings.LOG_LEVEL)

    if settings.STORAGE == "database":
        database.configure_database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
        database.init_db()
        logger.info("Database initialized successfully")
    else:
        logger.info("Using in-memory storage; analogies will not survive a restart")

    logger.info("Identity resolution mode: %s", settings.AUTH_MODE)

    yield


app = FastAPI(title="AnalogyAI API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.settings = settings
app.state.identity_resolver = build_identity_resolver(settings)
app.state.storage = MemoryStorage() if settings.STORAGE == "memory" else None
app.state.llm = AnalogyLLM(settings)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_llm(request: Request) -> AnalogyLLM:
    return request.app.state.llm


# ==================== Error Handlers ====================

@app.exception_handler(AnalogyAIError)
async def analogy_error_handler(request: Request, exc: AnalogyAIError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    content = {"message": exc.message}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return await analogy_error_handler(request, ValidationError(details=details))


# ==================== Authentication Routes ====================

@app.get("/api/auth/google")
async def google_login(settings: Settings = Depends(get_app_settings)):
    """Initiate Google OAuth login flow."""
    if not settings.GOOGLE_CLIENT_ID:
        raise ConfigurationError(
            "Google OAuth not configured. Please set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET."
        )

    # redirect_uri must match what's configured in Google Cloud Console
    redirect_uri = f"{settings.BACKEND_URL}/api/auth/google/callback"
    google_auth_url = "https://accounts.google.com/o/oauth2/v2/auth?" + urlencode({
        "client_id": settings.GOOGLE_CLIENT_ID,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": "openid email profile",
        "access_type": "offline",
        "prompt": "consent",
    })

    return RedirectResponse(url=google_auth_url)


@app.get("/api/auth/google/callback")
async def google_callback(
    code: str,
    settings: Settings = Depends(get_app_settings),
    storage: Storage = Depends(get_storage),
):
    """Handle Google OAuth callback and create/login user."""
    redirect_uri = f"{settings.BACKEND_URL}/api/auth/google/callback"

    # Exchange authorization code for access token
    async with get_google_oauth_client(settings) as client:
        token_response = await client.fetch_token(
            "https://oauth2.googleapis.com/token",
            code=code,
            redirect_uri=redirect_uri,
        )

        access_token = token_response.get("access_token")
        if not access_token:
            raise SignInError(details="Failed to obtain access token")

        user_info = await get_google_user_info(access_token)

    # Users are keyed by their Google profile id
    user = await run_in_threadpool(storage.upsert_user, UserUpsert(
        id=user_info["id"],
        email=user_info.get("email"),
        first_name=user_info.get("given_name"),
        last_name=user_info.get("family_name"),
        profile_image_url=user_info.get("picture"),
    ))

    access_token_jwt = create_access_token(data={"sub": user.id, "email": user.email}, settings=settings)

    token_param = urlencode({"token": access_token_jwt})
    return RedirectResponse(url=f"{settings.FRONTEND_URL}/auth/callback?{token_param}")


@app.get("/api/auth/user", response_model=UserRecord)
async def get_current_user_info(current_user: UserRecord = Depends(get_current_user)):
    """Get current authenticated user information."""
    return current_user


@app.post("/api/logout", response_model=MessageOut)
async def logout():
    """Logout endpoint (client should remove token)."""
    return MessageOut(message="Logged out successfully")


# ==================== API Routes ====================

@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.post("/api/analogy", response_model=AnalogyOut)
async def create_analogy(
    payload: GenerateAnalogyIn,
    current_user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    llm: AnalogyLLM = Depends(get_llm),
):
    """Generate a personalized analogy and example for a topic."""
    return await analogies.generate_analogy(payload, current_user, storage, llm)


@app.post("/api/analogy/regenerate", response_model=AnalogyOut)
async def regenerate_analogy(
    payload: RegenerateAnalogyIn,
    current_user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    llm: AnalogyLLM = Depends(get_llm),
):
    """Generate a new analogy for a previous one, steered by feedback."""
    return await analogies.regenerate_analogy(payload, current_user, storage, llm)


@app.get("/api/analogy/{analogy_id}", response_model=AnalogyRecord)
def get_analogy(
    analogy_id: str,
    current_user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return analogies.get_owned_analogy(storage, current_user.id, analogy_id)


@app.put("/api/analogy/{analogy_id}/favorite", response_model=FavoriteOut)
def toggle_favorite(
    analogy_id: str,
    payload: FavoriteIn,
    current_user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return analogies.set_favorite(storage, current_user.id, analogy_id, payload.is_favorite)


@app.post("/api/analogy/{analogy_id}/feedback", response_model=FeedbackOut)
def submit_feedback(
    analogy_id: str,
    payload: FeedbackIn,
    current_user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return analogies.submit_feedback(storage, current_user.id, analogy_id, payload.helpful)


@app.delete("/api/analogy/{analogy_id}", response_model=MessageOut)
def delete_analogy(
    analogy_id: str,
    current_user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return analogies.delete_analogy(storage, current_user.id, analogy_id)


@app.get("/api/history", response_model=HistoryOut)
def get_history(
    limit: int = Query(20, ge=1),
    offset: int = Query(0, ge=0),
    current_user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """List the current user's saved analogies, newest first."""
    return analogies.list_history(storage, current_user.id, limit=limit, offset=offset)


@app.get("/api/profile", response_model=UserRecord)
def get_profile(current_user: UserRecord = Depends(get_current_user)):
    return current_user


@app.put("/api/profile", response_model=UserRecord)
def update_profile(
    payload: UpdateProfileIn,
    current_user: UserRecord = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Update personalization defaults. Only the provided fields change."""
    return analogies.update_profile(storage, current_user.id, payload)
