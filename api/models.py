from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum
import re


# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def validate_password_complexity(password: str) -> str:
    """Validate password meets complexity requirements."""
    if len(password) < 8:
        raise ValueError('Password must be at least 8 characters')
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise ValueError(f'Password must not exceed {MAX_PASSWORD_BYTES} bytes')
    if not re.search(r'[a-z]', password):
        raise ValueError('Password must contain at least one lowercase letter')
    if not re.search(r'[A-Z]', password):
        raise ValueError('Password must contain at least one uppercase letter')
    if not re.search(r'\d', password):
        raise ValueError('Password must contain at least one digit')
    return password


# ============ Authentication Models ============

class UserSignup(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=MAX_PASSWORD_BYTES)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)

    @field_validator('password')
    @classmethod
    def password_complexity(cls, v):
        return validate_password_complexity(v)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class UserProfile(BaseModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    is_active: bool
    created_at: datetime


class SignupResponse(BaseModel):
    user: UserProfile
    tokens: TokenResponse


# ============ Transaction Models ============

class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class TransactionCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    type: TransactionType
    category: str = Field(default="uncategorized", min_length=1, max_length=100)
    currency: str = Field(default="USD", pattern=r'^[A-Z]{3}$')
    description: Optional[str] = Field(None, max_length=1000)
    occurred_at: Optional[datetime] = None
    bank_account_id: Optional[int] = None


class Transaction(BaseModel):
    id: int
    user_id: int
    bank_account_id: Optional[int] = None
    amount: Decimal
    currency: str
    type: TransactionType
    category: str
    description: Optional[str] = None
    occurred_at: datetime
    created_at: datetime


# ============ System Models ============

class HelloResponse(BaseModel):
    message: str
