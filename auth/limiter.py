"""
auth/limiter.py -- The slowapi limiter guarding POST /login.

api/main.py mounts it as middleware and web/routes.py decorates the login
handler with @limiter.limit(settings.login_rate_limit). Both import this one
instance so they count against the same in-memory store. Attempts are keyed
by client address; tests call limiter.reset() between cases.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://", strategy="fixed-window")
