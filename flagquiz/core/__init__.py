"""Core quiz primitives (sequencing, geometry, timers, hints, scoring, and the round orchestrator).

Kept free of FastAPI and Redis concerns so it can be reused by API routes, a UI host, and tests.
"""
