"""Firebase Admin app bootstrap for push delivery."""
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials

from app.config.settings import settings

logger = logging.getLogger(__name__)

_firebase_app: Optional[firebase_admin.App] = None


def get_firebase_app() -> Optional[firebase_admin.App]:
    """Initialize the default Firebase app once.

    Returns None when no service account is configured, which disables push.
    """
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app

    if not settings.FIREBASE_CREDENTIALS_PATH:
        logger.warning("[Firebase] FIREBASE_CREDENTIALS_PATH not set - push notifications disabled")
        return None

    cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    _firebase_app = firebase_admin.initialize_app(cred, options)
    logger.info("[Firebase] Admin SDK initialized")
    return _firebase_app
