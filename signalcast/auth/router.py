import logging

from fastapi import APIRouter, Depends, status
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from ..core.database import get_session
from ..models.JWTAuthToken import Token
from ..models.User import LoginRequest, RegisterRequest, UserResponse
from .service import authenticate_user, create_access_token, register_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
async def register(data: RegisterRequest, session: Session = Depends(get_session)):
    """
    Create an account. The password is stored only as an argon2 hash.
    """
    user = await run_in_threadpool(register_user, session, data)
    return UserResponse(id=user.id, identifier=user.email)

@router.post("/login", response_model=Token)
async def login(data: LoginRequest, session: Session = Depends(get_session)):
    """
    Login with email and password to get a 7-day session token.
    """
    user = await run_in_threadpool(authenticate_user, session, data.email, data.password)
    logger.info("Login successful for %s", user.email)
    return Token(token=create_access_token(user))
