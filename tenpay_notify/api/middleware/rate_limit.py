"""Rate limiting для notify endpoint"""
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

limiter = Limiter(key_func=get_remote_address)

__all__ = ['limiter', '_rate_limit_exceeded_handler', 'RateLimitExceeded']
