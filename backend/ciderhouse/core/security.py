"""
Security Module - JWT Authentication & Authorization
"""

from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Callable
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import uuid

from ciderhouse.core.config import settings
from ciderhouse.core.errors import TransferValidationError

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# HTTP Bearer token
security = HTTPBearer()

# Role hierarchy: higher level includes lower
ROLE_LEVELS = {"admin": 3, "operator": 2, "viewer": 1}


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def _encode(data: Dict[str, Any], token_type: str, expire: datetime) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": expire, "type": token_type})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create JWT access token

    Args:
        data: Payload to encode (should include user_id, email, role)
        expires_delta: Optional custom expiration
    """
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, "access", expire)


def create_refresh_token(data: Dict[str, Any]) -> str:
    """Create JWT refresh token"""
    expire = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(data, "refresh", expire)


def create_confirmation_token(data: Dict[str, Any]) -> str:
    """Short-lived token that carries a validated transfer awaiting blend confirmation"""
    expire = datetime.utcnow() + timedelta(minutes=settings.BLEND_CONFIRMATION_EXPIRE_MINUTES)
    return _encode({"jti": uuid.uuid4().hex, **data}, "blend_confirmation", expire)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate JWT token

    Returns:
        Decoded payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def decode_confirmation_token(token: str) -> Dict[str, Any]:
    """Decode a blend confirmation token; expired or tampered tokens are a transfer error"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise TransferValidationError(
            "Invalid or expired blend confirmation token",
            user_message="Blend confirmation expired. Submit the transfer again."
        )
    if payload.get("type") != "blend_confirmation":
        raise TransferValidationError("Token is not a blend confirmation token")
    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict[str, Any]:
    """
    Get current authenticated user from JWT token

    Returns user payload with:
    - user_id
    - email
    - role
    """
    payload = decode_token(credentials.credentials)

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type"
        )

    if payload.get("user_id") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    return payload


def has_role(current_user: Dict[str, Any], required_role: str) -> bool:
    """Check if user role is at least the required level"""
    user_level = ROLE_LEVELS.get(current_user.get("role"), 0)
    return user_level >= ROLE_LEVELS.get(required_role, 0)


def require_role(required_role: str) -> Callable:
    """
    Build a dependency that requires a minimum role

    Args:
        required_role: One of 'admin', 'operator', 'viewer'
    """
    async def dependency(
        current_user: Dict[str, Any] = Depends(get_current_user)
    ) -> Dict[str, Any]:
        if not has_role(current_user, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {required_role}"
            )
        return current_user

    return dependency


require_admin = require_role("admin")
require_operator = require_role("operator")
