"""
Tests for the request rate limiter
"""

from protocol_seating.utils.security import RateLimiter

def test_limit_is_per_bucket_and_client():
    limiter = RateLimiter()
    assert limiter.allow("upload", "10.0.0.1", 2)
    assert limiter.allow("upload", "10.0.0.1", 2)
    assert not limiter.allow("upload", "10.0.0.1", 2)

    assert limiter.allow("template", "10.0.0.1", 2)
    assert limiter.allow("upload", "10.0.0.2", 2)

def test_window_expires_old_hits():
    limiter = RateLimiter(window=0)
    assert limiter.allow("upload", "10.0.0.1", 1)
    assert limiter.allow("upload", "10.0.0.1", 1)

def test_reset_clears_history():
    limiter = RateLimiter()
    assert limiter.allow("upload", "10.0.0.1", 1)
    limiter.reset()
    assert limiter.allow("upload", "10.0.0.1", 1)
