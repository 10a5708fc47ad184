"""
Admin authentication and request throttling
"""

import logging
import secrets
import threading
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional, Tuple

from fastapi import HTTPException, Depends, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from protocol_seating.core.config import settings

logger = logging.getLogger(__name__)

security = HTTPBearer()

class RateLimiter:
    """Sliding one-minute window per (bucket, client) pair, in process memory"""

    def __init__(self, window: float = 60.0):
        self.window = window
        self._hits: Dict[Tuple[str, str], Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def allow(self, bucket: str, client_ip: str, limit: int) -> bool:
        now = time.monotonic()
        with self._lock:
            hits = self._hits[(bucket, client_ip)]
            while hits and hits[0] <= now - self.window:
                hits.popleft()
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

rate_limiter = RateLimiter()

def verify_admin_token(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Verify admin authentication token"""
    if not secrets.compare_digest(credentials.credentials, settings.ADMIN_TOKEN):
        logger.warning("Rejected admin request with invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token"
        )
    return credentials.credentials

def rate_limit_check(client_ip: str, bucket: str = "default", limit: Optional[int] = None) -> bool:
    """True while the client is under ``limit`` requests per minute for ``bucket``"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE
    allowed = rate_limiter.allow(bucket, client_ip, limit)
    if not allowed:
        logger.info("Rate limit hit for %s on %s", client_ip, bucket)
    return allowed

def get_client_ip(request: Request) -> str:
    """Extract client IP from request"""
    # reverse proxy headers first
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"
