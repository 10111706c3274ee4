"""Password hashing and access-token helpers used by the local identity provider."""

import logging
import uuid
from datetime import timedelta

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from loyalty_panel.constants import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from loyalty_panel.exceptions import AuthenticationError
from loyalty_panel.utils.dates import utcnow

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Sign a JWT for `data`.

    A unique `jti` claim is added so individual tokens can be revoked on sign-out.
    """
    to_encode = data.copy()
    if "sub" not in to_encode:
        raise ValueError("Missing 'sub' claim (user id) in token data.")

    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Return the token claims or raise AuthenticationError."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.info("Access token expired")
        raise AuthenticationError("Token has expired")
    except JWTError as e:
        logger.warning(f"JWT decoding failed: {e!s}")
        raise AuthenticationError("Invalid token")

    if payload.get("sub") is None:
        logger.warning("Token is missing 'sub' claim")
        raise AuthenticationError("Invalid token")
    return payload


def token_expiry(token: str) -> float | None:
    """`exp` claim as a Unix timestamp, read without verifying the signature."""
    try:
        exp = jwt.get_unverified_claims(token).get("exp")
    except JWTError:
        return None
    return float(exp) if exp is not None else None
