"""
Authentication Constants

JWT settings for access tokens issued by the local identity provider.
"""

import logging

from loyalty_panel.config import settings

logger = logging.getLogger(__name__)

SECRET_KEY = settings.secret_key
if SECRET_KEY == "change-me" and settings.environment == "production":
    logger.warning("Using default SECRET_KEY. This is insecure and should be changed in production!")

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes
