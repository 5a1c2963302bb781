# -*- coding: utf-8 -*-
"""
Authentication - JWT bearer tokens
WorkDesk API

- Passwords hashed with bcrypt (passlib)
- HS256 tokens, sub = user id, 7 day expiry by default
- Signing key from JWT_SECRET_KEY (required in production)
"""
from datetime import datetime, timedelta
from typing import Optional
import logging

from fastapi import Depends, HTTPException, status, APIRouter
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from workdesk.config import get_jwt_secret, JWT_ALGORITHM, JWT_EXPIRE_DAYS
from workdesk.database.connection import get_db
from workdesk.database.models import User, UserRole
from workdesk.database.repositories import UserRepository

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

security = HTTPBearer(auto_error=False)


# =============================================================================
# MODELS
# =============================================================================

class UserCreate(BaseModel):
    """Registration payload"""
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class UserLogin(BaseModel):
    """Login payload"""
    email: EmailStr
    password: str


class UserInfo(BaseModel):
    """Public user fields"""
    id: str
    username: str
    email: str
    role: str
    created_at: Optional[str] = None
    last_login: Optional[str] = None


class AuthResponse(BaseModel):
    """Token plus the authenticated user"""
    token: str
    user: UserInfo


# =============================================================================
# PASSWORD FUNCTIONS
# =============================================================================

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# =============================================================================
# TOKEN FUNCTIONS
# =============================================================================

def create_access_token(user_id: str, expires_delta: timedelta = None) -> str:
    """
    Creates a signed JWT for the user

    Args:
        user_id: Value stored in the sub claim
        expires_delta: Custom lifetime (default JWT_EXPIRE_DAYS)
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(days=JWT_EXPIRE_DAYS))
    to_encode = {"sub": user_id, "exp": expire}
    return jwt.encode(to_encode, get_jwt_secret(), algorithm=JWT_ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> str:
    """
    Validates a JWT and returns its subject

    Raises:
        HTTPException: 401 when the token is invalid or expired
    """
    try:
        payload = jwt.decode(token, get_jwt_secret(), algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"[Auth] Rejected token: {e}")
        raise _unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token: missing subject")
    return user_id


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency resolving the bearer token to a User

    Usage:
        @router.get("/tasks")
        def list_tasks(user: User = Depends(get_current_user)):
            ...
    """
    if credentials is None:
        raise _unauthorized("Missing authorization header")

    user_id = decode_token(credentials.credentials)
    user = UserRepository(db).get_by_id(user_id)
    if user is None:
        raise _unauthorized("User no longer exists")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Dependency allowing admins only"""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user


# =============================================================================
# AUTH ROUTES
# =============================================================================

auth_router = APIRouter(prefix="/auth", tags=["Authentication"])


def _auth_response(user: User) -> dict:
    return {"token": create_access_token(user.id), "user": user.to_dict()}


@auth_router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: UserCreate, db: Session = Depends(get_db)):
    repo = UserRepository(db)
    if repo.find_conflict(data.email, data.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email or username already exists"
        )

    user = repo.create({
        "username": data.username,
        "email": data.email,
        "password_hash": get_password_hash(data.password),
        "role": UserRole.USER.value,
    })
    logger.info(f"[Auth] Registered user {user.username}")
    return _auth_response(user)


@auth_router.post("/login", response_model=AuthResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    repo = UserRepository(db)
    user = repo.get_by_email(credentials.email)
    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"[Auth] Failed login for {credentials.email}")
        raise _unauthorized("Invalid credentials")

    repo.update_last_login(user)
    logger.info(f"[Auth] Login: {user.username}")
    return _auth_response(user)


@auth_router.get("/me", response_model=UserInfo)
def get_me(user: User = Depends(get_current_user)):
    return user.to_dict()
