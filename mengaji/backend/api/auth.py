import logging
from fastapi import APIRouter, Depends, HTTPException, status, Response, Request
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from datetime import datetime, timedelta, timezone
from uuid import uuid4
import jwt
from pydantic import ValidationError

from .schemas.user import Token, TokenData, LoginRequest, UserResponse, LoginResponse
from ..models.redis_models import SessionUser, UserSessionRedis
from ..db.redis_client import RedisClient
from ..services.user_service import UserService
from ..config.config import settings
from .dependencies import get_redis_client, get_user_service
from .utilities.limiter import limiter

logger = logging.getLogger(__name__)

# --- Router & security setup ---
router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


# --- Helpers ---
def create_access_token(data: dict, expires_delta: timedelta) -> str:
    """Creates a signed JWT that expires after expires_delta."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# --- Dependency for protected routes ---
async def get_current_user(
    token: str = Depends(oauth2_scheme),
    redis_client: RedisClient = Depends(get_redis_client)
) -> SessionUser:
    """
    Decodes the token, validates its payload with pydantic and requires a live
    session in Redis. Returns the user as stored in the session.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenData.model_validate(payload)
    except (jwt.PyJWTError, ValidationError) as e:
        logger.warning(f"Token validation error: {e}")
        raise credentials_exception

    user_session = await redis_client.get_user_session(token_data.user_id)
    if user_session is None:
        logger.warning(f"User {token_data.user_id} has a valid token but no active session. Denying access.")
        raise credentials_exception
    return user_session.user_data


# --- Login ---

async def _perform_login(email: str, password: str, user_service: UserService, redis_client: RedisClient) -> LoginResponse:
    """Verifies the credentials, opens a Redis session and issues the token."""
    logger.info(f"Login attempt for '{email}'.")
    user = await user_service.authenticate(email, password)

    ttl = settings.USER_SESSION_TTL_SECONDS
    now = datetime.now(timezone.utc)
    session = UserSessionRedis(
        user_data=SessionUser.model_validate(user.model_dump()),
        session_id=uuid4(),
        session_start_time=now,
        session_end_time=now + timedelta(seconds=ttl),
    )
    try:
        await redis_client.save_user_session(session, ttl=ttl)
    except Exception as e:
        logger.error(f"Could not store the session of user {user.id}.", exc_info=True)
        raise HTTPException(status_code=503, detail="Session store is unavailable.") from e

    access_token = create_access_token(data={"user_id": user.id}, expires_delta=timedelta(seconds=ttl))
    logger.info(f"User {user.id} ({user.role.value}) logged in, session TTL {ttl}s.")
    return LoginResponse(token=Token(access_token=access_token), user=UserResponse.model_validate(user))


# --- Endpoints ---

@router.post("/token", response_model=Token)
@limiter.limit("20/minute")
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    user_service: UserService = Depends(get_user_service),
    redis_client: RedisClient = Depends(get_redis_client)
):
    """Standard OAuth2 endpoint for Swagger UI. The username field carries the email."""
    login_response = await _perform_login(form_data.username, form_data.password, user_service, redis_client)
    return login_response.token


@router.post("/login", response_model=LoginResponse)
@limiter.limit("20/minute")
async def login(
    request: Request,
    login_request: LoginRequest,
    user_service: UserService = Depends(get_user_service),
    redis_client: RedisClient = Depends(get_redis_client)
):
    """Login endpoint for web clients."""
    return await _perform_login(login_request.email, login_request.password, user_service, redis_client)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("60/minute")
async def logout(
    request: Request,
    redis_client: RedisClient = Depends(get_redis_client),
    current_user: SessionUser = Depends(get_current_user)
):
    """Deletes the user's session from Redis."""
    await redis_client.delete_user_session(current_user.id)
    logger.info(f"Session of user {current_user.id} deleted.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserResponse)
@limiter.limit("60/minute")
async def me(
    request: Request,
    current_user: SessionUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Returns the logged-in user's current account data."""
    return await user_service.get_user(current_user.id)
