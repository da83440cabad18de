from datetime import datetime, timedelta, timezone
from typing import Annotated
import logging

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.errors import AuthError, ConflictError, ValidationError
from ..core.settings import settings
from ..models.JWTAuthToken import Identity, TokenPayload
from ..models.User import RegisterRequest, User

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__time_cost=settings.ARGON2_TIME_COST,
    argon2__memory_cost=settings.ARGON2_MEMORY_COST,
    argon2__parallelism=settings.ARGON2_PARALLELISM,
)

# OAuth2 scheme (for extracting token from header). Missing tokens are
# reported by verify_token so HTTP and live channel fail the same way.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password + settings.PASSWORD_PEPPER, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password + settings.PASSWORD_PEPPER)

def normalize_email(email: str) -> str:
    """Accounts are keyed case-insensitively; register and login both go through here."""
    return email.strip().lower()


def register_user(session: Session, data: RegisterRequest) -> User:
    if not data.email or not data.password:
        raise ValidationError("Missing email or password")
    if len(data.password) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password too short (minimum {settings.MIN_PASSWORD_LENGTH} characters)"
        )

    email = normalize_email(data.email)
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        raise ConflictError("Email is already registered")

    user = User(email=email, password_hash=get_password_hash(data.password))
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration of the same email
        session.rollback()
        raise ConflictError("Email is already registered")
    session.refresh(user)
    logger.info("Registered user %s", user.email)
    return user


def authenticate_user(session: Session, email: str | None, password: str | None) -> User:
    if not email or not password:
        raise ValidationError("Missing email or password")

    user = session.exec(select(User).where(User.email == normalize_email(email))).first()
    if not user:
        raise AuthError("Account does not exist. Please register first!")
    if not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials.")
    return user


def create_access_token(user: User, issued_at: datetime | None = None) -> str:
    """
    Signs a stateless session token for ``user``.

    The token embeds the email (``sub``), the numeric id (``uid``), issue time
    and an expiry ``ACCESS_TOKEN_EXPIRE_DAYS`` later. Nothing is stored
    server-side.
    """
    issued_at = issued_at or datetime.now(timezone.utc)
    expire = issued_at + timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    to_encode = TokenPayload(
        sub=user.email,
        uid=user.id,
        iat=int(issued_at.timestamp()),
        exp=int(expire.timestamp()),
    ).model_dump(exclude_none=True)
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.ALGORITHM)


def verify_token(token: str | None) -> Identity:
    """
    The single trust boundary: used by the HTTP dependency below and by the
    live channel handshake. Pure CPU work, it never touches the database.
    """
    if not token:
        raise AuthError("No token")
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise AuthError("Token has expired")
    except JWTError:
        raise AuthError("Invalid token")

    payload = TokenPayload(**claims)
    if not payload.sub or payload.exp is None:
        raise AuthError("Invalid token")
    return Identity(email=payload.sub, user_id=payload.uid)


async def get_current_identity(token: Annotated[str | None, Depends(oauth2_scheme)]) -> Identity:
    return verify_token(token)
