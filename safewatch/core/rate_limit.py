"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address. Only the report submission route
opts in: every accepted report becomes a write on the incident backend.

Usage in routes:
    from fastapi import Request
    from safewatch.core.rate_limit import limiter

    @router.post("/some-write-endpoint")
    @limiter.limit(settings.submission_rate_limit)
    async def my_endpoint(request: Request, payload: MyRequest):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
