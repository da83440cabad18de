from sqlmodel import SQLModel

class Token(SQLModel):
    token: str # JWT Token
    token_type: str = "bearer"

class TokenPayload(SQLModel):
    sub: str | None = None # User email
    uid: int | None = None # User ID
    exp: int | None = None # Expiration time
    iat: int | None = None # Issued at time

class Identity(SQLModel):
    """Verified identity carried by a session token."""
    email: str
    user_id: int | None = None
