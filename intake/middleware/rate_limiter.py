from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from intake.config import settings


def _rate_limit_key(request):
    """Client IP, or one shared bucket when limiting by IP is off"""
    if settings.rate_limit_by_ip:
        return get_remote_address(request)
    return "global"


def create_rate_limiter():
    """Create and configure rate limiter"""
    if settings.enable_rate_limiting:
        return Limiter(
            key_func=_rate_limit_key,
            default_limits=[f"{settings.max_requests_per_minute}/minute"],
        )
    return None


def apply_rate_limiting(app):
    """Apply rate limiting to FastAPI app"""
    limiter = create_rate_limiter()
    if limiter is not None:
        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    return limiter


def rate_limited(limiter):
    """Route decorator applying the per-minute limit, or nothing when disabled"""
    if limiter is None:
        return lambda endpoint: endpoint
    return limiter.limit(f"{settings.max_requests_per_minute}/minute")
