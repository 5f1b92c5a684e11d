"""JWT token utilities"""
import jwt
from typing import Optional
from config.settings import settings
import logging

logger = logging.getLogger(__name__)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate an access token issued by the identity service"""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )

        if payload.get('type') != 'access':
            return None

        return payload

    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token: {e}")
        return None


def read_user_id(token: Optional[str]) -> Optional[str]:
    """
    Current-user identity for the chat client.

    The client does not hold the signing secret, so the claim is read without
    verification; the store verifies the same token on every request.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        logger.warning(f"Unreadable token: {e}")
        return None
    user_id = payload.get('user_id')
    return str(user_id) if user_id else None
