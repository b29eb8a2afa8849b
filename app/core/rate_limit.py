from slowapi import Limiter

from app.features.users.dependencies import get_authorization_header

# Keyed by bearer token so each admin session gets its own budget
limiter = Limiter(key_func=get_authorization_header)
