"""Middleware package."""
from .rate_limit import RateLimitMiddleware, RateLimitConfig

__all__ = ["RateLimitMiddleware", "RateLimitConfig"]
