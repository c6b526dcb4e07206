import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from syncschool.core.config import get_jwt_settings, get_token_expires_delta, settings
from syncschool.core.errors import TokenError
from syncschool.core.logging import logger
from syncschool.schemas.enums import UserRoleEnum


class TokenType:
    ACCESS = "access"


pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__default_rounds=settings.BCRYPT_ROUNDS,
)


def get_password_hash(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    return pwd_context.verify(plain_password, hashed_password)


def create_token(
    data: Dict[str, Any],
    token_type: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create JWT token with specified type and expiration"""
    jwt_settings = get_jwt_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or get_token_expires_delta())

    to_encode.update({
        "exp": expire,
        "iss": jwt_settings["token_issuer"],
        "type": token_type,
        "jti": secrets.token_urlsafe(32),
    })

    return jwt.encode(to_encode, jwt_settings["secret_key"], algorithm=jwt_settings["algorithm"])


def verify_token(token: str, token_type: Optional[str] = TokenType.ACCESS) -> Dict[str, Any]:
    """
    Decode and validate a JWT.

    Raises:
        TokenError: signature, expiry, issuer or type does not check out
    """
    jwt_settings = get_jwt_settings()
    try:
        payload = jwt.decode(
            token,
            jwt_settings["secret_key"],
            algorithms=[jwt_settings["algorithm"]],
            issuer=jwt_settings["token_issuer"],
        )
    except JWTError as e:
        logger.warning(f"Token verification failed: {str(e)}")
        raise TokenError("Could not validate credentials")

    if token_type and payload.get("type") != token_type:
        raise TokenError(f"Invalid token type. Expected {token_type}")
    if not payload.get("sub"):
        raise TokenError("Could not validate credentials")

    return payload


def create_access_token(user_id: int, role: UserRoleEnum, tenant_id: Optional[int]) -> str:
    """Create access token carrying user ID, tenant and role"""
    data = {
        "sub": str(user_id),
        "tenant_id": tenant_id,
        "role": role.value if isinstance(role, UserRoleEnum) else role,
    }
    return create_token(data, TokenType.ACCESS)


def generate_reference(prefix: str, length: int = 8) -> str:
    """Random uppercase reference such as TXN-4K9Q2ZPA"""
    chars = string.ascii_uppercase + string.digits
    return f"{prefix}-" + "".join(secrets.choice(chars) for _ in range(length))

