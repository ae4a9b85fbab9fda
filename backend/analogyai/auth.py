"""Caller identity resolution, JWT tokens and Google OAuth helpers."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional
import httpx
from fastapi import Depends, Request
from jose import JWTError, jwt
from pydantic import BaseModel
from authlib.integrations.httpx_client import AsyncOAuth2Client

from analogyai.config import Settings
from analogyai.errors import AuthorizationError, ConfigurationError
from analogyai.schemas import UserRecord, UserUpsert
from analogyai.storage import Storage, get_storage


class Identity(BaseModel):
    """Authenticated caller as reported by an identity resolver."""

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class IdentityResolver(ABC):
    """Resolve the caller identity from an incoming request."""

    @abstractmethod
    def resolve(self, request: Request) -> Optional[Identity]:
        """Return the caller identity, or None if the request carries none."""


def create_access_token(data: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in the token
        settings: Settings with the signing key and algorithm
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        AuthorizationError: If token is invalid or expired
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise AuthorizationError("Could not validate credentials")


class TokenIdentityResolver(IdentityResolver):
    """Identity from an `Authorization: Bearer <jwt>` header issued at OAuth sign-in."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def resolve(self, request: Request) -> Optional[Identity]:
        authorization = request.headers.get("Authorization", "")
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None

        payload = decode_access_token(token, self.settings)
        user_id = payload.get("sub")
        if user_id is None:
            raise AuthorizationError("Could not validate credentials")
        return Identity(id=user_id, email=payload.get("email"))


class HeaderIdentityResolver(IdentityResolver):
    """Identity from headers set by an identity-aware proxy in front of the app."""

    PREFIX = "accounts.google.com:"

    def __init__(
        self,
        id_header: str = "X-Goog-Authenticated-User-Id",
        email_header: str = "X-Goog-Authenticated-User-Email",
    ):
        self.id_header = id_header
        self.email_header = email_header

    def _header(self, request: Request, name: str) -> Optional[str]:
        value = request.headers.get(name)
        if value and value.startswith(self.PREFIX):
            value = value[len(self.PREFIX):]
        return value or None

    def resolve(self, request: Request) -> Optional[Identity]:
        user_id = self._header(request, self.id_header)
        if user_id is None:
            return None
        return Identity(id=user_id, email=self._header(request, self.email_header))


class StaticIdentityResolver(IdentityResolver):
    """Every request is the same user. For local development and public demos."""

    def __init__(self, user_id: str, email: Optional[str] = None):
        self.identity = Identity(id=user_id, email=email)

    def resolve(self, request: Request) -> Optional[Identity]:
        return self.identity


def build_identity_resolver(settings: Settings) -> IdentityResolver:
    if settings.AUTH_MODE == "static":
        return StaticIdentityResolver(settings.STATIC_USER_ID, settings.STATIC_USER_EMAIL)
    if settings.AUTH_MODE == "header":
        return HeaderIdentityResolver()
    return TokenIdentityResolver(settings)


def get_identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity_resolver


def get_current_user(
    request: Request,
    resolver: IdentityResolver = Depends(get_identity_resolver),
    storage: Storage = Depends(get_storage),
) -> UserRecord:
    """
    Get the current authenticated user, creating the user record on first sight.

    Raises:
        AuthorizationError: If no identity can be resolved
    """
    identity = resolver.resolve(request)
    if identity is None:
        raise AuthorizationError()

    user = storage.get_user(identity.id)
    if user is None:
        user = storage.upsert_user(UserUpsert(**identity.model_dump()))
    return user


def get_google_oauth_client(settings: Settings) -> AsyncOAuth2Client:
    """
    Create and return a Google OAuth2 client.

    Returns:
        AsyncOAuth2Client configured for Google
    """
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise ConfigurationError("Google OAuth not configured")

    return AsyncOAuth2Client(
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
    )


async def get_google_user_info(access_token: str) -> dict:
    """
    Get user information from Google using access token.

    Args:
        access_token: Google OAuth access token

    Returns:
        Dictionary with user information (id, email, given_name, family_name, picture)
    """
    async with httpx.AsyncClient() as client:
        resp = await client.get(
            "https://www.googleapis.com/oauth2/v2/userinfo",
            headers={"Authorization": f"Bearer {access_token}"}
        )
        resp.raise_for_status()
        return resp.json()
