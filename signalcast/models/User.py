from datetime import datetime, timezone

from pydantic import AliasChoices, BaseModel, EmailStr, Field as PydanticField
from sqlmodel import Field, SQLModel

# ==========================================
# SQLModel (Database Entity + Base Pydantic)
# ==========================================
class User(SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True, nullable=False)
    password_hash: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

# ==========================================
# Pydantic Models (DTOs)
# ==========================================

# Properties to receive via API on registration. Fields are optional so that
# missing values reach the service and produce a readable 400.
class RegisterRequest(BaseModel):
    email: EmailStr | None = PydanticField(default=None, validation_alias=AliasChoices("identifier", "email"))
    password: str | None = PydanticField(default=None, validation_alias=AliasChoices("secret", "password"))

# Properties to receive via API on login
class LoginRequest(BaseModel):
    email: str | None = PydanticField(default=None, validation_alias=AliasChoices("identifier", "email"))
    password: str | None = PydanticField(default=None, validation_alias=AliasChoices("secret", "password"))

# Properties to return via API
class UserResponse(BaseModel):
    id: int
    identifier: str
