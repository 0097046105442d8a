"""Rate limiting configuration for the booking API."""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from booking_api.core.config import settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")

# In-memory storage unless RATE_LIMIT_STORAGE_URI points at a shared backend
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://" if IS_TESTING else settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED and not IS_TESTING,
)
