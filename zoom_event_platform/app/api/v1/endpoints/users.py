"""
User endpoints for API v1.

Registration, login and the current user's profile.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from zoom_event_platform.app.core.errors import PlatformError, to_http_exception
from zoom_event_platform.app.core.security import create_access_token, get_current_user
from zoom_event_platform.app.schemas.user import UserCreate, UserLogin, UserRead
from zoom_event_platform.app.services.user_service import UserService


router = APIRouter()


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(user: UserCreate) -> UserRead:
    """Register a new user.  Answers 409 if the email is taken."""
    try:
        return await UserService.create_user(user)
    except PlatformError as e:
        raise to_http_exception(e) from e


@router.post("/login")
async def login_user(credentials: UserLogin) -> dict:
    """Check email and password and return a bearer token."""
    try:
        db_user = await UserService.authenticate(credentials.email, credentials.password)
    except PlatformError as e:
        raise to_http_exception(e) from e
    if not db_user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    token = create_access_token({"sub": db_user.email})
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=UserRead)
async def read_me(current_user: dict = Depends(get_current_user)) -> UserRead:
    try:
        return await UserService.get_user(current_user["user_id"])
    except PlatformError as e:
        raise to_http_exception(e) from e
