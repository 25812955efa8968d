"""Storage backends for the sliding-window rate limiter.

``SlidingWindowRateLimiter`` keeps its per-client request timestamps in an
``AbstractRateLimitStore``; the in-memory store serves a single process.
"""
